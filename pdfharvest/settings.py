from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import dotenv

# Versioned worker script served by the pdf.js CDN. The script file name is
# reused for the locally cached copy.
DEFAULT_WORKER_SOURCE = (
    "https://cdnjs.cloudflare.com/ajax/libs/pdf.js/3.4.120/pdf.worker.min.js"
)
DEFAULT_FETCH_TIMEOUT = 30.0
UNKNOWN_AUTHOR = "Unknown author"

ENV_WORKER_SOURCE = "PDFHARVEST_WORKER_SOURCE"
ENV_CACHE_DIR = "PDFHARVEST_CACHE_DIR"
ENV_FETCH_TIMEOUT = "PDFHARVEST_FETCH_TIMEOUT"


@dataclass(frozen=True)
class HarvestSettings:
    """
    Runtime configuration for worker provisioning and text extraction.

    ``cache_dir`` of ``None`` means a ``pdfharvest`` directory under the
    system temp folder holds the inlined worker script.
    """

    worker_source: str = DEFAULT_WORKER_SOURCE
    cache_dir: Path | None = None
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    unknown_author: str = UNKNOWN_AUTHOR

    @classmethod
    def from_env(
        cls,
        environ: dict[str, str] | None = None,
        dotenv_path: str | Path | None = None,
    ) -> HarvestSettings:
        """
        Build settings from ``PDFHARVEST_*`` environment variables.

        Values from ``dotenv_path`` (a .env file) are used where the
        environment does not set them.
        """
        env: dict[str, str] = {}
        if dotenv_path:
            env.update(
                {
                    key: value
                    for key, value in dotenv.dotenv_values(dotenv_path).items()
                    if value is not None
                }
            )
        env.update(os.environ if environ is None else environ)

        worker_source = env.get(ENV_WORKER_SOURCE) or DEFAULT_WORKER_SOURCE
        cache_dir_value = env.get(ENV_CACHE_DIR)
        cache_dir = Path(cache_dir_value).expanduser() if cache_dir_value else None

        timeout_value = env.get(ENV_FETCH_TIMEOUT)
        if timeout_value:
            try:
                fetch_timeout = float(timeout_value)
            except ValueError as exc:
                raise ValueError(
                    f"{ENV_FETCH_TIMEOUT} must be a number, got [{timeout_value}]"
                ) from exc
            if fetch_timeout <= 0:
                raise ValueError(f"{ENV_FETCH_TIMEOUT} must be positive")
        else:
            fetch_timeout = DEFAULT_FETCH_TIMEOUT

        return cls(
            worker_source=worker_source,
            cache_dir=cache_dir,
            fetch_timeout=fetch_timeout,
        )


DEFAULT_SETTINGS = HarvestSettings()
