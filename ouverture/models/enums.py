from enum import Enum


class StatutDemande(str, Enum):
    nouvelle = "nouvelle"
    en_cours = "en_cours"
    approuvee = "approuvee"
    refusee = "refusee"


# Transitions autorisées (rester sur le même statut est toujours permis)
TRANSITIONS_STATUT: dict[StatutDemande, set[StatutDemande]] = {
    StatutDemande.nouvelle: {StatutDemande.en_cours, StatutDemande.approuvee, StatutDemande.refusee},
    StatutDemande.en_cours: {StatutDemande.nouvelle, StatutDemande.approuvee, StatutDemande.refusee},
    StatutDemande.refusee: {StatutDemande.en_cours},
    StatutDemande.approuvee: {StatutDemande.en_cours},
}


def transition_autorisee(actuel: StatutDemande, cible: StatutDemande) -> bool:
    if actuel == cible:
        return True
    return cible in TRANSITIONS_STATUT.get(actuel, set())


class Secteur(str, Enum):
    restaurant = "restaurant"
    hotellerie = "hotellerie"
    residence = "residence"
    epicerie = "epicerie"
    depanneur = "depanneur"
    autre = "autre"


SECTEUR_LIBELLES = {
    Secteur.restaurant: "Restaurant",
    Secteur.hotellerie: "Hôtellerie",
    Secteur.residence: "Résidence",
    Secteur.epicerie: "Épicerie",
    Secteur.depanneur: "Dépanneur",
    Secteur.autre: "Autre",
}


def libelle_secteur(secteur: str | None) -> str:
    try:
        return SECTEUR_LIBELLES[Secteur(secteur)]
    except ValueError:
        return secteur or ""


class TypeInteraction(str, Enum):
    focus = "focus"
    blur = "blur"
    abandon = "abandon"
