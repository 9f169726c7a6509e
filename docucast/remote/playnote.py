"""
PlayNote Client
===============
Play.ht PlayNote API over httpx. Turns a PDF (URL or upload) into a
two-host conversation.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import aiofiles
import httpx

from docucast.errors import MalformedResponseError, RemoteRejectedError, RemoteServiceError
from docucast.ingestion.source import ResolvedSource
from docucast.remote.base import RemoteConversionClient, StatusReport
from docucast.voices import get_voice

if TYPE_CHECKING:
    from docucast.app.config import AppConfig
    from docucast.app.controller import ConversionRequest

logger = logging.getLogger(__name__)

# HTTP statuses worth retrying
RETRYABLE_STATUS = {408, 425, 429}


class PlayNoteClient(RemoteConversionClient):
    """
    PlayNote implementation of RemoteConversionClient.

    Example:
        client = PlayNoteClient(api_key="...", user_id="...")
        job_id = await client.create(request, resolve_source(url))
        report = await client.status(job_id)
    """

    def __init__(
        self,
        api_key: str,
        user_id: str,
        base_url: str = "https://api.play.ai/api/v1",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.user_id = user_id
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )
        logger.debug(f"PlayNoteClient initialized base_url={self.base_url} timeout={timeout:.1f}s")

    @classmethod
    def from_config(cls, config: "AppConfig") -> "PlayNoteClient":
        return cls(
            api_key=config.api_key,
            user_id=config.user_id,
            base_url=config.base_url,
            timeout=config.poll_timeout,
        )

    @property
    def name(self) -> str:
        return "playnote"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.user_id)

    @property
    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.api_key:
            missing.append("PLAYHT_API_KEY")
        if not self.user_id:
            missing.append("PLAYHT_USER_ID")
        return missing

    def _headers(self) -> dict[str, str]:
        return {
            "AUTHORIZATION": self.api_key,
            "X-USER-ID": self.user_id,
            "accept": "application/json",
        }

    @staticmethod
    def _voice_fields(slot: str, voice_id: str) -> dict[str, str]:
        data = {slot: voice_id}
        preset = get_voice(voice_id)
        if preset is not None:
            data[f"{slot}Name"] = preset.name
            data[f"{slot}Gender"] = preset.gender
        return data

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as exc:
            raise RemoteServiceError(f"{method} {path} timed out: {exc}")
        except httpx.RequestError as exc:
            raise RemoteServiceError(f"{method} {path} failed: {exc}")

        logger.debug(f"playnote {method} {path} HTTP status={resp.status_code}")
        if resp.status_code >= 500 or resp.status_code in RETRYABLE_STATUS:
            raise RemoteServiceError(f"{method} {path} returned an error", resp.status_code)
        if resp.status_code >= 400:
            raise RemoteRejectedError(self._error_message(resp), resp.status_code)
        return resp

    @staticmethod
    def _error_message(resp: httpx.Response) -> str:
        try:
            body = resp.json()
        except ValueError:
            return resp.text[:200] or resp.reason_phrase
        if isinstance(body, dict):
            for key in ("errorMessage", "error_message", "message", "error"):
                if body.get(key):
                    return str(body[key])
        return str(body)[:200]

    @staticmethod
    def _json(resp: httpx.Response) -> dict[str, Any]:
        try:
            body = resp.json()
        except ValueError as exc:
            raise MalformedResponseError("Response is not JSON", str(exc))
        if not isinstance(body, dict):
            raise MalformedResponseError("Response is not a JSON object", type(body).__name__)
        return body

    async def create(self, request: "ConversionRequest", source: ResolvedSource) -> str:
        data = {"synthesisStyle": request.style.value}
        data.update(self._voice_fields("voice1", request.voice_1))
        data.update(self._voice_fields("voice2", request.voice_2))

        files = None
        if source.is_remote:
            data["sourceFileUrl"] = source.url
        else:
            async with aiofiles.open(source.path, "rb") as f:
                content = await f.read()
            files = {"sourceFile": (source.path.name, content, "application/pdf")}

        logger.info(
            f"playnote.create style={request.style.value} voices={request.voice_1}/{request.voice_2} "
            f"source={source.describe()}"
        )
        resp = await self._request("POST", "/playnotes", data=data, files=files)
        body = self._json(resp)
        job_id = body.get("id")
        if not job_id:
            raise MalformedResponseError("Create response has no job id", str(body)[:200])
        return str(job_id)

    async def status(self, job_id: str) -> StatusReport:
        resp = await self._request("GET", f"/playnotes/{job_id}")
        body = self._json(resp)
        raw_status = str(body.get("status") or "")
        error = None
        if "fail" in raw_status.lower() or "error" in raw_status.lower():
            error = str(body.get("errorMessage") or body.get("error") or raw_status)
        return StatusReport(
            raw_status=raw_status,
            audio_url=body.get("audioUrl") or None,
            error=error,
        )

    async def cancel(self, job_id: str) -> None:
        logger.info(f"playnote.cancel job={job_id}")
        await self._request("DELETE", f"/playnotes/{job_id}")

    async def aclose(self) -> None:
        await self._client.aclose()
