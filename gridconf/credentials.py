"""
gridconf Credentials

Object-store access credentials, looked up from the environment first and
then from the ``aws`` section of the application configuration.
"""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional, Tuple

Credentials = Tuple[str, str]
CredentialsLookup = Callable[[Mapping[str, str], Mapping[str, Any]], Optional[Credentials]]

_ENV_PAIRS = (
    ("AWS_ACCESS_KEY", "AWS_SECRET_KEY"),
    ("AWS_ACCESS_KEY_ID", "AWS_SECRET_ACCESS_KEY"),
)


def get_aws_credentials(
    env: Optional[Mapping[str, str]],
    config: Optional[Mapping[str, Any]],
) -> Optional[Credentials]:
    """Return ``(access_key, secret_key)`` or ``None`` when not configured."""
    env = env or {}
    for access_var, secret_var in _ENV_PAIRS:
        if env.get(access_var) and env.get(secret_var):
            return env[access_var], env[secret_var]

    aws = (config or {}).get("aws")
    if isinstance(aws, Mapping) and aws.get("accessKey") and aws.get("secretKey"):
        return str(aws["accessKey"]), str(aws["secretKey"])

    return None
