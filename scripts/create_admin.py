#!/usr/bin/env python3
"""
Crée un administrateur ou réinitialise son mot de passe.

Usage:
    python scripts/create_admin.py jdupont --nom "Julie Dupont" --email julie@example.com
    python scripts/create_admin.py jdupont --reset
"""
from __future__ import annotations

import argparse
import getpass
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from pydantic import ValidationError

from ouverture.database import SessionLocal, init_db
from ouverture.schemas.admin import AdminCreateSchema
from ouverture.services.admins import create_admin, get_admin_by_username, set_password


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Gestion des comptes administrateurs du tableau de bord.")
    parser.add_argument("username", help="Nom d'utilisateur")
    parser.add_argument("--nom", help="Nom affiché (création)")
    parser.add_argument("--email", help="Courriel (création)")
    parser.add_argument("--password", help="Mot de passe (sinon demandé au terminal)")
    parser.add_argument("--reset", action="store_true", help="Réinitialiser le mot de passe d'un compte existant")
    args = parser.parse_args(argv)

    password = args.password or getpass.getpass("Mot de passe : ")
    init_db()
    db = SessionLocal()
    try:
        if args.reset:
            if len(password) < 8:
                print("Le mot de passe doit contenir au moins 8 caractères")
                return 2
            admin = get_admin_by_username(db, args.username)
            if not admin:
                print(f"Compte introuvable : {args.username}")
                return 1
            set_password(db, admin, password)
            print(f"Mot de passe réinitialisé pour {admin.username}")
            return 0
        try:
            payload = AdminCreateSchema(username=args.username, password=password, nom=args.nom or args.username, email=args.email)
        except ValidationError as exc:
            print(exc)
            return 2
        res = create_admin(db, payload)
        if isinstance(res, str):
            print("Ce nom d'utilisateur existe déjà")
            return 1
        print(f"Administrateur créé : {res.username} (id={res.id})")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
