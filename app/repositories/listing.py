from sqlalchemy.orm import Session

from app.db.models.listing import Listing as ListingModel


def get_listing_by_id(db: Session, listing_id: int) -> ListingModel | None:
    """Get a listing by ID."""
    return db.query(ListingModel).filter(ListingModel.id == listing_id).first()


def lock_listing(db: Session, listing_id: int) -> ListingModel | None:
    """Get a listing by ID holding a row lock until the transaction ends."""
    return (
        db.query(ListingModel)
        .filter(ListingModel.id == listing_id)
        .with_for_update()
        .first()
    )
