from .base_policy import BasePolicy, Decision, PolicyDecision, Rule, RuleCategory, most_severe
from .privilege_policy import PrivilegeEscalationPolicy
from .secret_file_policy import SecretFileAccessPolicy
from .interactive_policy import InteractiveProgramPolicy
from .package_manager_policy import PackageManagerPolicy
from .version_control_policy import VersionControlPolicy
from .unsafe_reference_policy import UnsafeReferencePolicy
from .destructive_policy import DestructiveOperationPolicy
from .path_policy import LOCK_FILES, PathPolicy, PathRule

# Evaluation order: the first category with a matching rule decides a sub-command
DEFAULT_POLICIES = (
    PrivilegeEscalationPolicy(),
    SecretFileAccessPolicy(),
    InteractiveProgramPolicy(),
    PackageManagerPolicy(),
    VersionControlPolicy(),
    UnsafeReferencePolicy(),
    DestructiveOperationPolicy(),
)

__all__ = [
    "BasePolicy",
    "Decision",
    "PolicyDecision",
    "Rule",
    "RuleCategory",
    "most_severe",
    "PrivilegeEscalationPolicy",
    "SecretFileAccessPolicy",
    "InteractiveProgramPolicy",
    "PackageManagerPolicy",
    "VersionControlPolicy",
    "UnsafeReferencePolicy",
    "DestructiveOperationPolicy",
    "PathPolicy",
    "PathRule",
    "LOCK_FILES",
    "DEFAULT_POLICIES",
]
