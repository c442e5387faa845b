"""Rendering and extraction helpers for inscription records."""

from __future__ import annotations

import json
import logging
import webbrowser
from pathlib import Path
from typing import Any, Dict

from ortty.content import ContentKind
from ortty.inscription import InscriptionRecord

logger = logging.getLogger(__name__)

COMPACT_JSON_SEPARATORS = (",", ":")
ORDINALS_BASE_URL = "https://ordinals.com/inscription/"


def render(record: InscriptionRecord, raw_json: bool = False) -> str:
    """Return a terminal-friendly rendering of the record's content."""

    content = record.content
    if content.kind in (ContentKind.TEXT, ContentKind.HTML):
        return content.text or ""
    if content.kind is ContentKind.JSON:
        if raw_json:
            return json.dumps(content.json_value, separators=COMPACT_JSON_SEPARATORS, ensure_ascii=False)
        return json.dumps(content.json_value, indent=2, ensure_ascii=False)
    if content.kind is ContentKind.IMAGE:
        width, height = content.image_size or (0, 0)
        image_format = content.image_format or "unknown"
        return f"[image {image_format} {width}x{height}, {len(record.payload)} bytes]"
    return record.payload.hex()


def record_summary(record: InscriptionRecord) -> str:
    content_type = record.content_type or "unknown"
    summary = (
        f"{record} input {record.input_index} envelope {record.intra_input_index} | "
        f"{content_type} | {record.content.kind.value} | {len(record.payload)} bytes"
    )
    if record.is_brc20:
        summary += " | brc-20"
    return summary


def record_to_dict(record: InscriptionRecord, include_payload: bool = False) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "inscription_id": str(record.inscription_id),
        "txid": record.txid,
        "input": record.input_index,
        "index": record.intra_input_index,
        "content_type": record.content_type,
        "kind": record.content.kind.value,
        "length": len(record.payload),
        "brc20": record.is_brc20,
        "file_name": record.file_name,
    }
    if record.content.is_text_like:
        entry["text"] = record.content.text
    if record.content.is_json:
        entry["json"] = record.content.json_value
    if record.content.is_image:
        entry["image_format"] = record.content.image_format
        entry["image_size"] = list(record.content.image_size or ())
    if include_payload:
        entry["payload_hex"] = record.payload.hex()
    return entry


def write_to_file(record: InscriptionRecord, directory: str | Path) -> Path:
    """Write the raw payload to ``<directory>/<record.file_name>``."""

    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / record.file_name
    path.write_bytes(record.payload)
    logger.info("Wrote %s (%d bytes)", path, len(record.payload))
    return path


def inscription_url(record: InscriptionRecord, base_url: str = ORDINALS_BASE_URL) -> str:
    return f"{base_url}{record.inscription_id}"


def open_web(record: InscriptionRecord, base_url: str = ORDINALS_BASE_URL) -> bool:
    """Open the inscription on a web explorer using the default browser."""

    url = inscription_url(record, base_url)
    logger.debug("Opening %s", url)
    return webbrowser.open(url)
