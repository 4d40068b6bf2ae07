"""Core pipeline for makewebbook."""

from __future__ import annotations

import json
import logging
import os
import random
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from .extract import ParsedFile, encode_source_text, parse_section_file, read_source_text
from .links import LinkReport, resolve_links
from .model import BookStructure
from .outline import build_outline
from .patcher import patch_section_file
from .toc import render_contents_file

LOG = logging.getLogger("makewebbook")

EXIT_INVALID_ARGS = 1
EXIT_CONFIG = 2
EXIT_STRUCTURE = 3
EXIT_IO = 4

CONFIGURATION_FILE = Path("resources") / "configuration.json"


@dataclass
class BookConfig:
    backup_directory: str
    cover_file: str
    toc_file: str
    section_files: List[str]


@dataclass
class RunResult:
    backup_path: Path
    toc_path: Path
    rewritten: List[str] = field(default_factory=list)
    links: LinkReport = field(default_factory=LinkReport)
    duplicate_ids: int = 0


def _resolve_log_level(verbose: bool, debug: bool) -> int:
    return logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)


def _configure_makewebbook_logger(level: int) -> None:
    LOG.setLevel(level)
    LOG.propagate = False
    if not LOG.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
        handler.setLevel(level)
        LOG.addHandler(handler)
    else:
        for handler in LOG.handlers:
            handler.setLevel(level)
            if handler.formatter is None:
                handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))


def setup_logging(verbose: bool, debug: bool) -> None:
    level = _resolve_log_level(verbose, debug)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    _configure_makewebbook_logger(level)


def _required_string(data: dict, key: str, path: Path) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Configuration file {path} missing non-empty key: {key}")
    return value.strip()


def load_configuration(path: Path) -> BookConfig:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise ValueError(f"Unable to read configuration file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a JSON object")

    sections = data.get("SectionsFileNames")
    if not isinstance(sections, list) or not sections:
        raise ValueError(f"Configuration file {path} missing non-empty key: SectionsFileNames")
    names: List[str] = []
    for entry in sections:
        if not isinstance(entry, str) or not entry.strip():
            raise ValueError(f"Configuration file {path}: SectionsFileNames entries must be non-empty strings")
        if entry.strip() in names:
            raise ValueError(f"Configuration file {path}: section file {entry!r} listed twice")
        names.append(entry.strip())

    return BookConfig(
        backup_directory=_required_string(data, "BackupDirectory", path),
        cover_file=_required_string(data, "CoverFileName", path),
        toc_file=_required_string(data, "TableOfContentsFileName", path),
        section_files=names,
    )


def timestamp_for_path(now: Optional[datetime] = None) -> str:
    moment = now or datetime.now().astimezone()
    return moment.isoformat(timespec="seconds").replace(":", "-")


def unique_target(path: Path) -> Path:
    if not path.exists():
        return path
    i = 1
    while True:
        candidate = path.with_name(f"{path.name}__{i}")
        if not candidate.exists():
            return candidate
        i += 1


def make_backup_directory(parent: Path, now: Optional[datetime] = None) -> Path:
    if parent.exists() and not parent.is_dir():
        raise NotADirectoryError(f'Backup directory name "{parent}" is not a directory')
    parent.mkdir(parents=True, exist_ok=True)
    backup_path = unique_target(parent / timestamp_for_path(now))
    backup_path.mkdir(mode=0o700)
    LOG.info("Backup directory: %s", backup_path)
    return backup_path


def move_to_backup(path: Path, backup_path: Path) -> Path:
    target = backup_path / path.name
    os.replace(path, target)
    return target


def ensure_unchanged(path: Path, text: str) -> None:
    if read_source_text(path) != text:
        raise RuntimeError(f"File {path} changed while the book was being processed")


def write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def parse_book(book_dir: Path, config: BookConfig) -> List[ParsedFile]:
    parsed: List[ParsedFile] = []
    for name in config.section_files:
        path = book_dir / name
        if not path.is_file():
            raise FileNotFoundError(f"Section file not found: {path}")
        parsed.append(parse_section_file(path, name))
    return parsed


def build_book(parsed: List[ParsedFile], config: BookConfig, seed: Optional[int] = None) -> BookStructure:
    LOG.info("Determine document structure")
    return build_outline(parsed, config.cover_file, config.toc_file, seed=seed)


def run_pipeline(
    book_dir: Path,
    config: BookConfig,
    *,
    seed: Optional[int] = None,
    now: Optional[datetime] = None,
) -> RunResult:
    if seed is None:
        seed = random.SystemRandom().getrandbits(32)
        LOG.debug("Identifier seed: %d", seed)

    parsed = parse_book(book_dir, config)
    structure = build_book(parsed, config, seed)
    link_report = resolve_links(structure)

    LOG.info("Change documents")
    outputs: Dict[str, str] = {}
    for index, (source, section_file) in enumerate(zip(parsed, structure.section_files)):
        if not section_file.needs_rewrite:
            LOG.debug("   %s unchanged", section_file.file_name)
            continue
        targets = structure.navigation_targets(index)
        outputs[section_file.file_name] = patch_section_file(source.text, section_file, targets)

    for source in parsed:
        if source.file_name in outputs:
            ensure_unchanged(book_dir / source.file_name, source.text)

    backup_path = make_backup_directory(book_dir / config.backup_directory, now)
    result = RunResult(
        backup_path=backup_path,
        toc_path=book_dir / config.toc_file,
        links=link_report,
        duplicate_ids=len(structure.duplicate_ids),
    )

    for source in parsed:
        new_text = outputs.get(source.file_name)
        if new_text is None:
            continue
        path = book_dir / source.file_name
        moved = move_to_backup(path, backup_path)
        try:
            ensure_unchanged(moved, source.text)
        except RuntimeError:
            os.replace(moved, path)
            raise
        write_bytes(path, encode_source_text(new_text))
        result.rewritten.append(source.file_name)
        LOG.info("   %s rewritten", source.file_name)

    toc_path = result.toc_path
    old_toc: Optional[str] = None
    if toc_path.exists():
        old_toc = read_source_text(move_to_backup(toc_path, backup_path))
    write_bytes(toc_path, encode_source_text(render_contents_file(structure, old_toc, config.toc_file)))
    return result
