from .company import BusinessUnit, Company

__all__ = [
    "Company",
    "BusinessUnit",
]
