#!/usr/bin/env python3
"""
Crée les tables (demandes, admins, analytics) et le compte administrateur par défaut.
À exécuter depuis la racine du projet : `python3 scripts/init_db.py`.
"""
from pathlib import Path
import sys

from sqlalchemy import inspect

# Ajouter la racine du projet au PYTHONPATH si besoin
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from ouverture.database import SessionLocal, engine, init_db
from ouverture.services.admins import ensure_default_admin


def run():
    init_db()
    db = SessionLocal()
    try:
        admin = ensure_default_admin(db)
    finally:
        db.close()
    for table in sorted(inspect(engine).get_table_names()):
        print(f"Table: {table}")
    if admin:
        print(f"Administrateur par défaut créé : {admin.username}")


if __name__ == "__main__":
    run()
