"""
Remote Conversion Client Interface
==================================
Abstract base class for remote text-to-speech conversion services.
The job controller depends only on this capability, never on a transport.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from docucast.ingestion.source import ResolvedSource

if TYPE_CHECKING:
    from docucast.app.controller import ConversionRequest


@dataclass(frozen=True)
class StatusReport:
    """
    One status fetch.

    Attributes:
        raw_status: Free-text status as reported by the service
        audio_url: Download URL, present once the audio exists
        error: Error message when the service reports a failed job
    """
    raw_status: str
    audio_url: Optional[str] = None
    error: Optional[str] = None


class RemoteConversionClient(ABC):
    """
    Abstract base class for conversion services.

    Implementations raise RemoteServiceError for transient failures and
    RemoteRejectedError when the service refuses a request.

    Implementations:
        - PlayNoteClient: Play.ht PlayNote API over httpx
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier like 'playnote'."""
        pass

    @property
    def is_configured(self) -> bool:
        """Whether credentials are present."""
        return True

    @property
    def missing_credentials(self) -> list[str]:
        """Names of absent credentials, empty when configured."""
        return []

    @abstractmethod
    async def create(self, request: "ConversionRequest", source: ResolvedSource) -> str:
        """
        Submit a conversion job.

        Returns:
            Opaque job id assigned by the service
        """
        pass

    @abstractmethod
    async def status(self, job_id: str) -> StatusReport:
        """Fetch the current status of a job."""
        pass

    @abstractmethod
    async def cancel(self, job_id: str) -> None:
        """Ask the service to stop a job."""
        pass

    async def aclose(self) -> None:
        """Release network resources."""
        return None
