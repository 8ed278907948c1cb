"""
Classification of clamd reply lines.

Typical formats:
  - "stream: OK"
  - "stream: Win.Test.EICAR_HDB-1 FOUND"
  - "stream: Sig1 FOUND stream: Sig2 FOUND"  (allmatch, daemon-dependent)
  - "INSTREAM size limit exceeded. ERROR"
"""

import re

from app.models import DaemonError, ScanClean, ScanInfected, ScanOutcome

_FOUND_RE = re.compile(r"(?:^|[\s:])([^\s:]+)\s+FOUND(?=\s|$)")
_ERROR_RE = re.compile(r"(?:^|[\s:])ERROR$")
_OK_RE = re.compile(r"(?:^|[\s:])OK$")


def _message_body(line: str) -> str:
    # Drop the "stream:" / "fd[10]:" style prefix
    _prefix, sep, rest = line.partition(":")
    return rest.strip() if sep else line


def classify(line: str) -> ScanOutcome:
    raw = line.strip().strip("\0").strip() if isinstance(line, str) else ""
    if not raw:
        return DaemonError(raw="", reason="empty reply")

    if _ERROR_RE.search(raw):
        message = _message_body(raw)[: -len("ERROR")].strip()
        return DaemonError(raw=raw, reason=message or "clamd returned error")

    signatures = tuple(_FOUND_RE.findall(raw))
    if signatures:
        return ScanInfected(signatures=signatures, raw=raw)

    if _OK_RE.search(raw):
        return ScanClean(raw=raw)

    return DaemonError(raw=raw, reason="unrecognized reply")
