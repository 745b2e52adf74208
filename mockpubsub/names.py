"""Resource name parsing and validation (short names and projects/{p}/{kind}/{name})."""

import re
from dataclasses import dataclass

from mockpubsub.errors import InvalidArgument

TOPICS = "topics"
SUBSCRIPTIONS = "subscriptions"

_PREFIX = "projects/"
_MAX_NAME_LENGTH = 255
_SHORT_NAME_RE = re.compile(r"^[A-Za-z0-9\-_.~+%]+$")


@dataclass(frozen=True)
class ResourceName:
    """A resolved resource name scoped to one project."""

    project_id: str
    kind: str
    short_name: str

    @property
    def full_name(self) -> str:
        return f"{_PREFIX}{self.project_id}/{self.kind}/{self.short_name}"

    def __str__(self) -> str:
        return self.full_name


def _invalid(kind: str, name: str) -> InvalidArgument:
    return InvalidArgument(f"Invalid [{kind}] name: (name={name})")


def _valid_short_name(short_name: str) -> bool:
    if not short_name or len(short_name) > _MAX_NAME_LENGTH:
        return False
    if short_name.lower().startswith("goog"):
        return False
    return bool(_SHORT_NAME_RE.match(short_name))


def resolve_name(name: str, kind: str, project_id: str) -> ResourceName:
    """
    Resolve a short or fully-qualified name of the expected kind.

    Raises InvalidArgument when the input is malformed, its kind segment is not
    `kind`, or it names a resource in another project.
    """
    if not isinstance(name, str):
        raise _invalid(kind, str(name))
    if name.startswith(_PREFIX):
        parts = name.split("/")
        if len(parts) != 4 or not parts[1] or parts[2] != kind:
            raise _invalid(kind, name)
        _, project, _, short_name = parts
        if not _valid_short_name(short_name):
            raise _invalid(kind, name)
        if project != project_id:
            raise InvalidArgument(
                f"Resource project does not match client project: (name={name})"
            )
        return ResourceName(project_id=project, kind=kind, short_name=short_name)
    if not _valid_short_name(name):
        raise _invalid(kind, name)
    return ResourceName(project_id=project_id, kind=kind, short_name=name)


def topic_name(name: str, project_id: str) -> ResourceName:
    return resolve_name(name, TOPICS, project_id)


def subscription_name(name: str, project_id: str) -> ResourceName:
    return resolve_name(name, SUBSCRIPTIONS, project_id)
