"""Import all models to register them with SQLAlchemy metadata."""
from app.models.base import Base
from app.models.saved_vessel import SavedVessel
