"""Credential resolution and Authorization header construction.

A session holds at most one secret. It is modelled as a single value that is
either a :class:`Password`, an :class:`AccessHash`, an :class:`ApiToken` or
``None``, so replacing one kind with another can never leave two behind.

When no secret is passed in, the resolver looks for an access hash in
``~/.accesshash`` and then for a password in ``REMOTE_PASSWORD``.
"""

import base64
import getpass
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from .errors import AuthenticationUnavailable
from .models import Service, ServiceTarget, service_from_port

logger = logging.getLogger(__name__)

ACCESSHASH_FILENAME = ".accesshash"
USER_ENV = "REMOTE_USER"
PASSWORD_ENV = "REMOTE_PASSWORD"


def strip_linebreaks(secret: str) -> str:
    """Access hashes are stored wrapped across lines; the header needs one token."""
    return secret.replace("\r", "").replace("\n", "")


@dataclass(frozen=True)
class Password:
    value: str

    def __repr__(self) -> str:
        return "Password(****)"


@dataclass(frozen=True)
class AccessHash:
    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", strip_linebreaks(self.value))

    def __repr__(self) -> str:
        return "AccessHash(****)"


@dataclass(frozen=True)
class ApiToken:
    value: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", strip_linebreaks(self.value))

    def __repr__(self) -> str:
        return "ApiToken(****)"


Credential = Union[Password, AccessHash, ApiToken]


# ---------------------------------------------------------------------------
# Environment / filesystem access
# ---------------------------------------------------------------------------

class CredentialSource:
    """Environment and filesystem accessor used during credential discovery.

    Tests substitute their own instance instead of touching the real
    environment.
    """

    def getenv(self, name: str) -> Optional[str]:
        return os.environ.get(name)

    def home_dir(self, user: str) -> str:
        return os.path.expanduser(f"~{user}")

    def read_file(self, path: str) -> Optional[str]:
        file_path = Path(path)
        if not file_path.is_file():
            return None
        try:
            return file_path.read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("Unable to read %s: %s", path, e)
            return None

    def current_user(self) -> str:
        return getpass.getuser()


def resolve_user(user: Optional[str], source: CredentialSource) -> str:
    if user:
        return user
    return source.getenv(USER_ENV) or source.current_user()


def discover_credential(user: str, source: CredentialSource) -> Credential:
    """Find a secret for ``user`` when none was passed explicitly."""
    hash_path = os.path.join(source.home_dir(user), ACCESSHASH_FILENAME)
    contents = source.read_file(hash_path)
    if contents and strip_linebreaks(contents).strip():
        logger.debug("Using access hash from %s", hash_path)
        return AccessHash(contents.strip())

    password = source.getenv(PASSWORD_ENV)
    if password:
        logger.debug("Using password from %s", PASSWORD_ENV)
        return Password(password)

    raise AuthenticationUnavailable(
        f"No credentials for '{user}': pass 'pass', 'accesshash' or 'api_token', "
        f"create {hash_path}, or set {PASSWORD_ENV}"
    )


def resolve_credentials(
    user: Optional[str] = None,
    password: Optional[str] = None,
    accesshash: Optional[str] = None,
    api_token: Optional[str] = None,
    source: Optional[CredentialSource] = None,
) -> Tuple[str, Credential]:
    """Return ``(user, credential)``.

    Explicit secrets take precedence in the order api_token, accesshash,
    password. Without any, fall back to :func:`discover_credential`.
    """
    source = source or CredentialSource()
    resolved_user = resolve_user(user, source)

    if api_token:
        return resolved_user, ApiToken(api_token)
    if accesshash:
        return resolved_user, AccessHash(accesshash)
    if password:
        return resolved_user, Password(password)
    return resolved_user, discover_credential(resolved_user, source)


# ---------------------------------------------------------------------------
# Authorization headers
# ---------------------------------------------------------------------------

def auth_headers(
    user: str,
    credential: Optional[Credential],
    service: ServiceTarget = Service.WHOSTMGR,
) -> Dict[str, str]:
    if credential is None:
        raise AuthenticationUnavailable(f"No credential set for '{user}'")

    if isinstance(credential, Password):
        token = base64.b64encode(f"{user}:{credential.value}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {token}"}
    if isinstance(credential, AccessHash):
        return {"Authorization": f"WHM {user}:{credential.value}"}

    if isinstance(service, int):
        service = service_from_port(service)
    scheme = "cpanel" if service in (Service.CPANEL, Service.WEBMAIL) else "whm"
    return {"Authorization": f"{scheme} {user}:{credential.value}"}


def mask_authorization(headers: Dict[str, str]) -> Dict[str, str]:
    """Copy of ``headers`` safe to write to a debug log."""
    masked = dict(headers)
    if "Authorization" in masked:
        scheme = masked["Authorization"].split(" ", 1)[0]
        masked["Authorization"] = f"{scheme} ****"
    return masked


__all__ = [
    "Password",
    "AccessHash",
    "ApiToken",
    "Credential",
    "CredentialSource",
    "strip_linebreaks",
    "resolve_user",
    "discover_credential",
    "resolve_credentials",
    "auth_headers",
    "mask_authorization",
]
