import enum


class UserRole(str, enum.Enum):
    CLIENT = "client"
    ARTISAN = "artisan"


class ProjectStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


class StorageBucket(str, enum.Enum):
    GENERATED_IMAGES = "generated-images"
    PORTFOLIO_IMAGES = "portfolio-images"
    PROPOSAL_ATTACHMENTS = "proposal-attachments"
