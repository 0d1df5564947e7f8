from sqlalchemy.orm import Session

from nagarseva.models import Category

DEFAULT_CATEGORIES = [
    "Roads & Potholes",
    "Waste Management",
    "Street Lights",
    "Water Supply",
    "Drainage",
    "Public Safety",
]


def list_categories(db: Session) -> list[Category]:
    """Categories in display order."""
    return db.query(Category).order_by(Category.name).all()


def seed_categories(db: Session, names: list[str] = None) -> int:
    """Insert missing default categories. Returns how many were added."""
    names = names or DEFAULT_CATEGORIES
    existing = {name for (name,) in db.query(Category.name).all()}
    added = 0
    for name in names:
        if name in existing:
            continue
        db.add(Category(name=name))
        added += 1
    if added:
        db.flush()
    return added
