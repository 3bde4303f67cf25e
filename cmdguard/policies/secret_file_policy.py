"""
Secret file access policy.
Blocks commands that name credential, key or environment files.
"""

from fnmatch import fnmatchcase
from typing import Iterator

from .base_policy import BasePolicy, Rule, RuleCategory

# Matched against the final path segment
SECRET_BASENAMES = (
    ".env", ".env.*",
    "secrets.*", ".secrets",
    "credentials.*", ".credentials",
    "*.pem", "*.key", "*.p12", "*.pfx", "*.jks", "*.keystore",
    ".boto", ".s3cfg",
    "id_rsa", "id_dsa", "id_ecdsa", "id_ed25519",
    ".npmrc", ".git-credentials", ".netrc", ".pgpass", ".my.cnf",
    ".mongorc.js", ".redis.conf", ".vault-token", ".terraformrc",
)
# Matched against the whole path, anchored at any directory
SECRET_PATHS = (
    ".aws/*",
    ".ssh/id_*",
    ".docker/config.json",
    ".kube/config",
)
# Checked-in templates that hold placeholders only
TEMPLATE_SUFFIXES = (".example", ".sample", ".template", ".dist")

# Redirections that open a file (the others take a delimiter, a string or an fd)
FILE_REDIRECTS = frozenset({"<", ">", ">>", ">|", "<>", "&>", "&>>"})


def is_secret_path(path: str) -> bool:
    """True when a path names a file that is likely to hold credentials."""
    path = path.replace("\\", "/").rstrip("/")
    if not path:
        return False
    basename = path.rsplit("/", 1)[-1]
    if basename.endswith(TEMPLATE_SUFFIXES) or basename.endswith(".pub"):
        return False
    if any(fnmatchcase(basename, pattern) for pattern in SECRET_BASENAMES):
        return True
    return any(
        fnmatchcase(path, pattern) or fnmatchcase(path, "*/" + pattern)
        for pattern in SECRET_PATHS
    )


def _candidates(sub) -> Iterator[str]:
    for arg in sub.arguments:
        if arg.startswith("-"):
            # --env-file=.env
            if "=" in arg:
                yield arg.split("=", 1)[1]
            continue
        yield arg
    for redirect in sub.redirects:
        if redirect.operator in FILE_REDIRECTS:
            yield redirect.target


def names_secret_file(sub) -> bool:
    return any(is_secret_path(candidate) for candidate in _candidates(sub))


class SecretFileAccessPolicy(BasePolicy):
    """Blocks any command whose operands or redirections name a secret file."""

    category = RuleCategory.SECRET_FILE_ACCESS
    rules = (
        Rule(
            id="secret-file-access",
            category=RuleCategory.SECRET_FILE_ACCESS,
            matcher=names_secret_file,
            message=(
                "`{name}` touches a secret file. Reading secret files is blocked to prevent "
                "exposure of sensitive data including API keys, credentials, and configuration."
            ),
        ),
    )

    def get_description(self) -> str:
        """Get policy description."""
        return "Blocks commands that read environment, credential and key files"
