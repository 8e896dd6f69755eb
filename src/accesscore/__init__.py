from .config import AccessConfig, LogLevel, load_access_config_from_env
from .exceptions import (
    AccessCoreError,
    ConflictError,
    DuplicateNameError,
    InvalidScopeError,
    InvalidTemplateError,
    NotAssignedToProjectError,
    NotFoundError,
    ProtectedTemplateError,
    ScopeMismatchError,
    StoreUnavailableError,
    SystemDefaultTemplateError,
    TemplateInUseError,
)
from .logging import (
    safe_preview,
    redact_secrets,
    safe_log_value,
    AccessLogFormatter,
    AccessLoggerAdapter,
    setup_logging,
    get_access_logger,
)
from .permissions import (
    AccessLevel,
    AssignmentStore,
    EffectivePermissions,
    PermissionResolver,
    PermissionTemplate,
    TemplateScope,
    TemplateStore,
    ToolCatalog,
    can_access,
    check_tools,
    migrate_user,
    seed_default_templates,
)
from .stores import InMemoryStore, RedisStore

__all__ = [
    'AccessConfig',
    'LogLevel',
    'load_access_config_from_env',
    'AccessCoreError',
    'ConflictError',
    'DuplicateNameError',
    'InvalidScopeError',
    'InvalidTemplateError',
    'NotAssignedToProjectError',
    'NotFoundError',
    'ProtectedTemplateError',
    'ScopeMismatchError',
    'StoreUnavailableError',
    'SystemDefaultTemplateError',
    'TemplateInUseError',
    'safe_preview',
    'redact_secrets',
    'safe_log_value',
    'AccessLogFormatter',
    'AccessLoggerAdapter',
    'setup_logging',
    'get_access_logger',
    'AccessLevel',
    'AssignmentStore',
    'EffectivePermissions',
    'PermissionResolver',
    'PermissionTemplate',
    'TemplateScope',
    'TemplateStore',
    'ToolCatalog',
    'can_access',
    'check_tools',
    'migrate_user',
    'seed_default_templates',
    'InMemoryStore',
    'RedisStore',
]
