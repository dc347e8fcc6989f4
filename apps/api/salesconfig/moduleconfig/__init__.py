from salesconfig.moduleconfig.models import ModuleConfigRecord
from salesconfig.moduleconfig.resolver import (
    CachingConfigResolver,
    ConfigResolver,
    ConfigScope,
    get_config_resolver,
    set_config_resolver,
)
from salesconfig.moduleconfig.schemas import (
    LEAD_PROGRESS_FIELD,
    ConfigField,
    DispositionEntry,
    ModuleConfig,
    ProgressValue,
    SubDispositionEntry,
)
from salesconfig.moduleconfig.store import ModuleConfigStore

__all__ = [
    "LEAD_PROGRESS_FIELD",
    "ConfigField",
    "ProgressValue",
    "DispositionEntry",
    "SubDispositionEntry",
    "ModuleConfig",
    "ModuleConfigRecord",
    "ModuleConfigStore",
    "ConfigScope",
    "ConfigResolver",
    "CachingConfigResolver",
    "get_config_resolver",
    "set_config_resolver",
]
