"""Redaction of sensitive data in command output.

Command output is redacted before it is shown to the LLM:

- JSON or YAML manifests of Secrets and ConfigMaps (also inside ``List``
  objects) get every value under ``data`` and ``stringData`` replaced.
- ``kubectl describe`` text gets the body of its ``Data`` sections replaced.
- String values of manifests and plain text are scanned for
  credential-looking assignments.

All functions here are pure and idempotent.
"""

import json
import re
from typing import Any, Dict, List, Optional, Tuple

import structlog
import yaml

logger = structlog.get_logger(__name__)

REDACTED = "***FILTERED***"

SECRET_BEARING_KINDS = ("Secret", "ConfigMap")
SECRET_DATA_FIELDS = ("data", "stringData")

_DELIMITER_LINE = "===="

# (pattern, replacement) pairs applied in order to plain text
_TEXT_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"(?i)(password|passwd)\s*[=:]\s*[^\s]+"), rf"\1={REDACTED}"),
    (re.compile(r"(?i)(username|user)\s*[=:]\s*[^\s]+"), rf"\1={REDACTED}"),
    (re.compile(r"(?i)(api[_-]?key|token|secret|auth)\s*[=:]\s*[^\s]+"), rf"\1={REDACTED}"),
    (re.compile(r"(?i)(connection_string|conn_string|jdbc_url)\s*[=:]\s*[^\s]+"), rf"\1={REDACTED}"),
    (re.compile(r"(?i)\b(connection|conn)\s*[=:]\s*[^\s]+"), rf"\1={REDACTED}"),
    (re.compile(r"(?i)(credential|cred)\s*[=:]\s*[^\s]+"), rf"\1={REDACTED}"),
    (re.compile(r"(?i)\b(bearer)\s+[a-zA-Z0-9_\-\.]+"), rf"\1 {REDACTED}"),
    (re.compile(r"(?i)\b(basic)\s+[a-zA-Z0-9+/]{8,}={0,2}"), rf"\1 {REDACTED}"),
]

_COMMAND_PATTERNS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"(?i)--from-literal[= ]\"([a-zA-Z0-9_-]+)=([^\"]+)\""), rf'--from-literal="\1={REDACTED}"'),
    (re.compile(r"(?i)--from-literal[= ]'([a-zA-Z0-9_-]+)=([^']+)'"), rf"--from-literal='\1={REDACTED}'"),
    (re.compile(r"(?i)--from-literal[= ]([a-zA-Z0-9_-]+)=([^\s'\"]+)"), rf"--from-literal=\1={REDACTED}"),
    (re.compile(r"(?i)(--token|--password|--username)[= ]([^\s]+)"), rf"\1={REDACTED}"),
]


def redact(output: str) -> str:
    """Redact sensitive data from command output.

    Structured output (JSON first, then YAML) is handled field by field and
    re-serialized in the format it arrived in; it is returned verbatim when
    nothing in it needs masking. Anything else goes through the describe
    filter and the credential pattern filter.

    Args:
        output: Raw command output

    Returns:
        Output with sensitive values replaced by ``***FILTERED***``
    """
    if not output:
        return output

    parsed, fmt = _parse_structured(output)
    if parsed is not None:
        redacted = _redact_object(parsed)
        sanitized = _sanitize_values(parsed if redacted is None else redacted)
        if redacted is None and sanitized == parsed:
            return output
        logger.debug("Redacted structured output", format=fmt, kind=parsed.get("kind"))
        return _serialize(sanitized, fmt)

    return sanitize_patterns(filter_describe_output(output))


def _parse_structured(output: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
    """Parse output as a Kubernetes object.

    Only mappings that carry a ``kind`` count as structured; everything else
    (scalars, lists, describe text that happens to be valid YAML) is treated
    as plain text.

    Returns:
        Tuple of (parsed mapping, "json" or "yaml"), or (None, None)
    """
    try:
        data = json.loads(output)
        fmt = "json"
    except ValueError:
        try:
            data = yaml.safe_load(output)
            fmt = "yaml"
        except yaml.YAMLError:
            return None, None

    if isinstance(data, dict) and "kind" in data:
        return data, fmt
    return None, None


def _redact_object(obj: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Redact a Secret/ConfigMap, or the secret-bearing items of a List.

    Returns:
        The redacted object, or None if nothing in it is secret-bearing
    """
    kind = obj.get("kind")

    if kind in SECRET_BEARING_KINDS:
        redacted = dict(obj)
        for field in SECRET_DATA_FIELDS:
            section = obj.get(field)
            if isinstance(section, dict):
                redacted[field] = {
                    key: REDACTED if isinstance(value, str) and value else value
                    for key, value in section.items()
                }
        return redacted

    if kind == "List" and isinstance(obj.get("items"), list):
        changed = False
        items = []
        for item in obj["items"]:
            redacted_item = _redact_object(item) if isinstance(item, dict) else None
            if redacted_item is None:
                items.append(item)
            else:
                items.append(redacted_item)
                changed = True
        if changed:
            redacted = dict(obj)
            redacted["items"] = items
            return redacted

    return None


def _sanitize_values(obj: Any) -> Any:
    """Apply the credential patterns to every string value, keeping the structure."""
    if isinstance(obj, dict):
        return {key: _sanitize_values(value) for key, value in obj.items()}
    if isinstance(obj, list):
        return [_sanitize_values(item) for item in obj]
    if isinstance(obj, str):
        return sanitize_patterns(obj)
    return obj


def _serialize(obj: Dict[str, Any], fmt: Optional[str]) -> str:
    if fmt == "json":
        return json.dumps(obj, indent=4)
    return yaml.safe_dump(obj, default_flow_style=False, sort_keys=False)


def _is_object_header(lines: List[str], index: int) -> bool:
    """A ``Name:`` line immediately followed by a ``Namespace:`` line."""
    if index + 1 < len(lines):
        return (
            lines[index].strip().startswith("Name:")
            and lines[index + 1].strip().startswith("Namespace:")
        )
    return False


def _is_section_header(lines: List[str], index: int) -> bool:
    """A line immediately followed by the ``====`` underline."""
    if index + 1 < len(lines):
        return lines[index + 1] == _DELIMITER_LINE
    return False


def filter_describe_output(output: str) -> str:
    """Replace the body of ``Data`` sections in ``kubectl describe`` output.

    Filtering only starts once an object header (``Name:`` then
    ``Namespace:``) has been seen. A section body runs until the next
    section header or object header.

    Example:
        >>> filter_describe_output("Name: x\\nNamespace: y\\nData\\n====\\npassword: hunter2")
        'Name: x\\nNamespace: y\\nData\\n====\\n***FILTERED***\\n'
    """
    lines = output.split("\n")
    filtered: List[str] = []
    in_object = False

    i = 0
    while i < len(lines):
        if _is_object_header(lines, i):
            in_object = True

        if in_object and _is_section_header(lines, i) and lines[i].startswith("Data"):
            filtered.extend([lines[i], lines[i + 1], REDACTED, ""])
            i += 2
            while i < len(lines) and not _is_section_header(lines, i) and not _is_object_header(lines, i):
                i += 1
        else:
            filtered.append(lines[i])
            i += 1

    return "\n".join(filtered)


def sanitize_patterns(text: str) -> str:
    """Mask credential-looking assignments (passwords, tokens, auth headers)."""
    for pattern, replacement in _TEXT_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def sanitize_command(command: str) -> str:
    """Mask credentials in a command line before it is logged or displayed.

    Args:
        command: Command line as typed or suggested

    Returns:
        Command line with literal secrets replaced
    """
    if not command:
        return command
    for pattern, replacement in _COMMAND_PATTERNS:
        command = pattern.sub(replacement, command)
    return sanitize_patterns(command)
