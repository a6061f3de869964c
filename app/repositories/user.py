from sqlalchemy.orm import Session

from app.db.models.user import User as UserModel


def get_user_by_id(db: Session, user_id: int) -> UserModel | None:
    """Get a user by ID."""
    return db.query(UserModel).filter(UserModel.id == user_id).first()


def get_users_by_ids(db: Session, user_ids: list[int]) -> list[UserModel]:
    """Get the users with the given IDs. Unknown IDs are simply missing from the result."""
    if not user_ids:
        return []
    return db.query(UserModel).filter(UserModel.id.in_(user_ids)).order_by(UserModel.id).all()
