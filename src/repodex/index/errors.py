"""Error taxonomy shared by the rebuild pipeline and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from repodex.index.schema import RebuildStage, RepositoryIdentity


class RepodexError(Exception):
    """Base class for all repodex errors."""


class StoreUnavailable(RepodexError):
    """The metadata store could not answer a count/fetch call."""


class WriterFailure(RepodexError):
    """The index writer failed to purge, add entries, or pack."""


class ConstraintViolation(RepodexError):
    """A write to the metadata store broke the (storage, repository, name) key."""


class RebuildCancelled(RepodexError):
    """A rebuild was cancelled between page iterations."""


@dataclass(frozen=True)
class RebuildFailed(RepodexError):
    """Raised by ``RebuildOutcome.raise_for_failure`` for a failed rebuild."""

    repository: RepositoryIdentity
    stage: RebuildStage
    cause: BaseException | None

    def __str__(self) -> str:
        return f"Rebuild of {self.repository} failed during {self.stage.value}: {self.cause}"
