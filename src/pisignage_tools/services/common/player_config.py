"""
piSignage Player Tools - Player Server Configuration

Points the piSignage player at a server by rewriting the server keys of its
JSON config files. Files are parsed and re-serialised (keeping key order,
indentation and the trailing newline) rather than edited with text
substitution, so a URL can never corrupt the document.
"""

import json
import logging
import os
import re
import tempfile
from collections import OrderedDict
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Union

from pisignage_tools.constants import (
    EXTENDED_SERVER_KEYS,
    PACKAGE_SERVER_KEYS,
    SETTINGS_SERVER_KEYS,
)
from pisignage_tools.exceptions.player_config_exception import (
    PlayerConfigException,
    PlayerConfigNotFoundException,
)
from .paths import SystemPaths
from .results import StepResult, StepStatus

logger = logging.getLogger(__name__)

_INDENT_RE = re.compile(r'^([ \t]+)\S', re.MULTILINE)


def detect_indent(text: str) -> Optional[Union[int, str]]:
    """
    Guess the indentation used by a JSON document.

    Returns:
        The indent argument for json.dumps: a number of spaces, a tab string,
        or None for a single-line document.
    """
    match = _INDENT_RE.search(text)
    if not match:
        return None
    indent = match.group(1)
    if '\t' in indent:
        return indent
    return len(indent)


def find_server_values(node: Any, keys: Iterable[str]) -> Iterator[Tuple[str, Any]]:
    """Yield every (key, value) pair in the document whose key is in keys."""
    keys = set(keys)
    if isinstance(node, dict):
        for key, value in node.items():
            if key in keys:
                yield key, value
            yield from find_server_values(value, keys)
    elif isinstance(node, list):
        for item in node:
            yield from find_server_values(item, keys)


def replace_server_values(node: Any, keys: Iterable[str], server_url: str) -> Tuple[int, int]:
    """
    Set every string value under one of keys to server_url, in place.

    Non-string values are left untouched.

    Returns:
        (matched, changed): number of string values found, and how many of
        them differed from server_url.
    """
    keys = set(keys)
    matched = changed = 0
    if isinstance(node, dict):
        for key, value in node.items():
            if key in keys and isinstance(value, str):
                matched += 1
                if value != server_url:
                    node[key] = server_url
                    changed += 1
            else:
                m, c = replace_server_values(value, keys, server_url)
                matched += m
                changed += c
    elif isinstance(node, list):
        for item in node:
            m, c = replace_server_values(item, keys, server_url)
            matched += m
            changed += c
    return matched, changed


def load_json(path: Path) -> Tuple[str, Any]:
    text = path.read_text(encoding='utf-8')
    try:
        return text, json.loads(text, object_pairs_hook=OrderedDict)
    except ValueError as e:
        raise PlayerConfigException(path, f"Invalid JSON: {e}")


def dump_json(document: Any, original_text: str) -> str:
    text = json.dumps(document, indent=detect_indent(original_text), ensure_ascii=False)
    if original_text.endswith('\n'):
        text += '\n'
    return text


def write_atomic(path: Path, text: str) -> None:
    """Replace path with text, keeping its mode and ownership."""
    st = path.stat()
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        os.chmod(tmp_name, st.st_mode & 0o7777)
        if os.geteuid() == 0:
            os.chown(tmp_name, st.st_uid, st.st_gid)
        os.replace(tmp_name, str(path))
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def log_server_values(path: Path, keys: Iterable[str]) -> None:
    """Re-read path and log the server values for operator verification."""
    try:
        _, document = load_json(path)
    except (OSError, PlayerConfigException) as e:
        logger.warning(f"Could not re-read {path}: {e}")
        return
    for key, value in find_server_values(document, keys):
        logger.info(f"    \"{key}\": {json.dumps(value)}")


def update_server_keys(path: Path, keys: Iterable[str], server_url: str, step_name: str) -> StepResult:
    """
    Rewrite the server keys of one existing JSON file.

    Raises:
        PlayerConfigException: the file is not valid JSON.
    """
    keys = tuple(keys)
    before, document = load_json(path)
    matched, changed = replace_server_values(document, keys, server_url)

    if not matched:
        logger.warning(f"No {'/'.join(keys)} keys found in {path}")
        return StepResult(step_name, StepStatus.WARNING, "no server keys found", path=path)

    if not changed:
        logger.info(f"  - {path} already points at {server_url}")
        log_server_values(path, keys)
        return StepResult(step_name, StepStatus.OK, "already up to date", path=path)

    after = dump_json(document, before)
    write_atomic(path, after)
    logger.info(f"  - Updated {', '.join(keys)} in: {path}")
    log_server_values(path, keys)
    return StepResult(step_name, StepStatus.CHANGED, f"{changed} value(s) updated",
                      path=path, before=before, after=after)


def set_server_url(paths: SystemPaths, server_url: str) -> List[StepResult]:
    """
    Point the player at server_url.

    The package descriptor and the device settings file are mandatory;
    the older fallback config locations are updated only if they exist.

    Raises:
        PlayerConfigNotFoundException: a mandatory file is missing.
        PlayerConfigException: a mandatory file is not valid JSON.
    """
    logger.info("Setting piSignage server URL...")
    results = []

    mandatory = (
        (paths.package_json, PACKAGE_SERVER_KEYS),
        (paths.settings_json, SETTINGS_SERVER_KEYS),
    )
    # Validate both files before writing either one
    for path, _ in mandatory:
        if not path.is_file():
            raise PlayerConfigNotFoundException(path)
        load_json(path)

    for path, keys in mandatory:
        results.append(update_server_keys(path, keys, server_url, 'player-config'))

    for path in paths.fallback_config_files:
        if not path.is_file():
            continue
        try:
            results.append(update_server_keys(path, EXTENDED_SERVER_KEYS, server_url, 'player-config-fallback'))
        except PlayerConfigException as e:
            logger.warning(e.message)
            results.append(StepResult('player-config-fallback', StepStatus.WARNING, e.message, path=path))

    return results
