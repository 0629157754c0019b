"""DEX template file map — renders a broker configuration into repository files."""

from __future__ import annotations

import base64
import binascii
import logging
import re
from pathlib import Path

from dex_publisher.domain.entities import DexConfig, DexImages, FileChange
from dex_publisher.domain.exceptions import ValidationError

logger = logging.getLogger(__name__)

ENV_PATH = ".env"
THEME_PATH = "app/styles/theme.css"
FAVICON_PATH = "public/favicon.webp"
PRIMARY_LOGO_PATH = "public/logo.webp"
SECONDARY_LOGO_PATH = "public/logo-secondary.webp"

WORKFLOW_FILES: dict[str, str] = {
    "deploy.yml": ".github/workflows/deploy.yml",
    "sync-fork.yml": ".github/workflows/sync-fork.yml",
}

_DATA_URI_RE = re.compile(r"^data:image/([^;]+);base64,(.+)$", re.DOTALL)


def decode_image_data_uri(data_uri: str | None) -> bytes | None:
    """Return the raw bytes of a ``data:image/*;base64,`` URI, or ``None``."""
    if not data_uri:
        return None
    match = _DATA_URI_RE.match(data_uri)
    if not match:
        logger.warning("Invalid data URI format for image")
        return None
    try:
        return base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError):
        logger.warning("Image data URI is not valid base64")
        return None


def render_env(config: DexConfig, *, has_primary_logo: bool, has_secondary_logo: bool) -> str:
    """Render the Vite ``.env`` file consumed by the DEX template."""
    return "\n".join(
        [
            "# Broker settings",
            f"VITE_ORDERLY_BROKER_ID={config.broker_id}",
            f"VITE_ORDERLY_BROKER_NAME={config.broker_name}",
            "",
            "# Meta tags",
            f"VITE_APP_NAME={config.broker_name}",
            f"VITE_APP_DESCRIPTION={config.broker_name} - A DEX powered by Orderly Network",
            "",
            "# Social Media Links",
            f"VITE_TELEGRAM_URL={config.telegram_link or ''}",
            f"VITE_DISCORD_URL={config.discord_link or ''}",
            f"VITE_TWITTER_URL={config.x_link or ''}",
            "",
            "# Logo flags - indicates if logos have been set",
            f"VITE_HAS_PRIMARY_LOGO={'true' if has_primary_logo else 'false'}",
            f"VITE_HAS_SECONDARY_LOGO={'true' if has_secondary_logo else 'false'}",
        ]
    )


def build_config_files(config: DexConfig, images: DexImages | None = None) -> list[FileChange]:
    """Return the ``.env``, theme and image files for *config*."""
    if not config.broker_id.strip() or not config.broker_name.strip():
        raise ValidationError("broker_id and broker_name must not be empty.")

    images = images or DexImages()
    favicon = decode_image_data_uri(images.favicon)
    primary = decode_image_data_uri(images.primary_logo)
    secondary = decode_image_data_uri(images.secondary_logo)

    files = [
        FileChange.text(
            ENV_PATH,
            render_env(
                config,
                has_primary_logo=primary is not None,
                has_secondary_logo=secondary is not None,
            ),
        )
    ]
    if config.theme_css:
        files.append(FileChange.text(THEME_PATH, config.theme_css))
    if favicon is not None:
        files.append(FileChange.binary(FAVICON_PATH, favicon))
    if primary is not None:
        files.append(FileChange.binary(PRIMARY_LOGO_PATH, primary))
    if secondary is not None:
        files.append(FileChange.binary(SECONDARY_LOGO_PATH, secondary))
    return files


def load_workflow_files(workflows_dir: Path | None) -> list[FileChange]:
    """Read the GitHub Actions workflows shipped with every new DEX."""
    if workflows_dir is None or not workflows_dir.is_dir():
        raise ValidationError(f"Workflows directory not found at {workflows_dir}")

    files: list[FileChange] = []
    for name, repo_path in WORKFLOW_FILES.items():
        source = workflows_dir / name
        if not source.is_file():
            raise ValidationError(f"Workflow file missing: {source}")
        files.append(FileChange.text(repo_path, source.read_text(encoding="utf-8")))
    return files
