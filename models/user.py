from models.base_model import Base, BaseModel, SoftDeleteMixin
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship


class User(SoftDeleteMixin, BaseModel, Base):
    __tablename__ = "users"
    name = Column(String(255), nullable=False)
    # always stored lowercase, see models.schemas.common.normalize_email
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        passive_deletes=True
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User id={self.id} email={self.email}>"
