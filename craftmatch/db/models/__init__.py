from craftmatch.db.models.artisan import ArtisanProfile, ArtisanSpecialization, PortfolioImage
from craftmatch.db.models.dictionary import Category, Material, Specialization
from craftmatch.db.models.generated_image import GeneratedImage
from craftmatch.db.models.project import Project
from craftmatch.db.models.proposal import Proposal
from craftmatch.db.models.review import Review
from craftmatch.db.models.user import User

__all__ = [
    "ArtisanProfile",
    "ArtisanSpecialization",
    "Category",
    "GeneratedImage",
    "Material",
    "PortfolioImage",
    "Project",
    "Proposal",
    "Review",
    "Specialization",
    "User",
]
