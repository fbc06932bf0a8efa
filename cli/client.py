from __future__ import annotations

from typing import Any, Dict, NoReturn, Optional

import httpx
import typer

from cli.config import CLIConfig

ANALYTICS_PATH = "/api/moisture/analytics"


class ApiClient:
    """Minimal HTTP client for the moisture analytics service."""

    def __init__(self, config: CLIConfig) -> None:
        self._config = config
        self._client = httpx.Client(base_url=config.base_url, timeout=config.timeout)

    def close(self) -> None:
        self._client.close()

    def analyze(
        self,
        job_id: str,
        start: str,
        end: str,
        location: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {"jobId": job_id, "startDate": start, "endDate": end}
        if location is not None:
            body["location"] = location

        try:
            response = self._client.post(ANALYTICS_PATH, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            self._handle_http_error(exc)
        except httpx.TransportError as exc:
            typer.secho(
                f"Could not reach {self._config.base_url}: {exc}",
                fg=typer.colors.RED,
                err=True,
            )
            raise typer.Exit(code=1) from exc
        return response.json()

    @staticmethod
    def _handle_http_error(exc: httpx.HTTPStatusError) -> NoReturn:
        detail: str | None = None
        try:
            data = exc.response.json()
            detail = data.get("error") or data.get("detail")
        except Exception:  # noqa: BLE001 - best effort parsing
            detail = exc.response.text.strip()
        message = (
            f"Request failed with status {exc.response.status_code}: {detail or 'no detail provided.'}"
        )
        typer.secho(message, fg=typer.colors.RED, err=True)
        raise typer.Exit(code=1)
