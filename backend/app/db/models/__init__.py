"""Re-export all models so Base.metadata sees them."""

from app.db.models.component_wattage import ComponentWattage
from app.db.models.notification import Notification
from app.db.models.project_membership import ProjectMembership
from app.db.models.project_request import ProjectRequest
from app.db.models.project_stage_instance import ProjectStageInstance
from app.db.models.stage_progress import StageProgressRecord
from app.db.models.user import Device, User

__all__ = [
    "ComponentWattage",
    "Device",
    "Notification",
    "ProjectMembership",
    "ProjectRequest",
    "ProjectStageInstance",
    "StageProgressRecord",
    "User",
]
