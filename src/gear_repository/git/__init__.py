"""Gear git repository provisioning and deployment"""

from .cache import SubmoduleCache
from .models import *
from .repository import TEMPLATE_LOCATIONS, ApplicationRepository
from .scripts import CATALOG, ScriptOperation, ScriptRenderer
from .security import HookEnforcer

__all__ = [
    # Facade
    "ApplicationRepository",
    "TEMPLATE_LOCATIONS",
    # Script catalog
    "CATALOG",
    "ScriptOperation",
    "ScriptRenderer",
    # Collaborators
    "SubmoduleCache",
    "HookEnforcer",
    # Models
    "ScriptBindings",
    "GearIdentity",
    "PopulateFromTemplate",
    "PopulateFromUrl",
]
