from enum import StrEnum


class Allergy(StrEnum):
    """Allergens a guest can declare (EU list of 14, plus NONE)"""

    NONE = 'NONE'
    GLUTEN = 'GLUTEN'
    DAIRY = 'DAIRY'
    EGG = 'EGG'
    PEANUT = 'PEANUT'
    TREENUT = 'TREENUT'
    FISH = 'FISH'
    SHELLFISH = 'SHELLFISH'
    SOY = 'SOY'
    SESAME = 'SESAME'
    CELERY = 'CELERY'
    MUSTARD = 'MUSTARD'
    LUPIN = 'LUPIN'
    SULPHITES = 'SULPHITES'
    MOLLUSCS = 'MOLLUSCS'
