"""Unified diff computation, parsing, rendering and application.

The schema update flow shows the user a unified diff between the schema on
disk and a freshly generated candidate, then applies exactly that diff to the
text it was computed from.  This module implements both halves:

* ``compute_diff`` -- a deterministic line-level diff grouped into hunks with
  three lines of context, built on ``difflib.SequenceMatcher``.
* ``apply_patch`` -- re-applies a ``Patch`` to a base text.  A base that has
  diverged from the patch's pre-image yields a failed ``MergeResult`` rather
  than an exception or partially merged text.

Texts are split on ``"\\n"`` only and every line keeps its terminator, so
``apply_patch(a, compute_diff(label, a, b))`` reproduces ``b`` byte for byte,
including a missing final newline.
"""

from __future__ import annotations

import difflib
import hashlib
import re
from dataclasses import dataclass

from rich.text import Text

from pgenie.exceptions import PatchFormatError

CONTEXT_LINES = 3
NO_NEWLINE_MARKER = "\\ No newline at end of file"

_HUNK_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Hunk:
    """A contiguous block of changes with its surrounding context.

    ``old_start``/``new_start`` hold the numbers exactly as they appear in the
    ``@@`` header: 1-based, except that an empty range points at the line
    *before* it (``-0,0`` for an insertion at the top of a file).
    """

    old_start: int
    old_count: int
    new_start: int
    new_count: int
    lines: tuple[tuple[str, str], ...] = ()

    @property
    def header(self) -> str:
        old = _format_range(self.old_start, self.old_count)
        new = _format_range(self.new_start, self.new_count)
        return f"@@ -{old} +{new} @@"

    @property
    def old_index(self) -> int:
        """0-based index of the first base line this hunk touches."""
        return self.old_start - 1 if self.old_count else self.old_start


@dataclass(frozen=True)
class Patch:
    """An immutable unified diff for a single file.

    Attributes:
        label: File name shown in the ``---``/``+++`` headers.
        hunks: Ordered, non-overlapping hunks.
        base_digest: SHA-256 of the text the patch was computed from.  Empty
            when the patch was parsed from plain diff text.
    """

    label: str
    hunks: tuple[Hunk, ...] = ()
    base_digest: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.hunks

    @property
    def additions(self) -> int:
        return sum(1 for h in self.hunks for tag, _ in h.lines if tag == "+")

    @property
    def deletions(self) -> int:
        return sum(1 for h in self.hunks for tag, _ in h.lines if tag == "-")

    @property
    def text(self) -> str:
        """The patch as standard unified diff text (``""`` when empty)."""
        if not self.hunks:
            return ""
        out = [f"--- a/{self.label}", f"+++ b/{self.label}"]
        for hunk in self.hunks:
            out.append(hunk.header)
            for tag, line in hunk.lines:
                if line.endswith("\n"):
                    out.append(tag + line[:-1])
                else:
                    out.append(tag + line)
                    out.append(NO_NEWLINE_MARKER)
        return "\n".join(out) + "\n"


@dataclass
class MergeResult:
    """Outcome of applying a patch: merged text, or an explicit failure."""

    success: bool
    text: str | None = None
    error: str | None = None
    hunks_applied: int = 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def split_lines(text: str) -> list[str]:
    """Split *text* on ``"\\n"``, keeping terminators on every line."""
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def text_digest(text: str) -> str:
    """SHA-256 hex digest of *text* encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8", errors="surrogatepass")).hexdigest()


def _format_range(start: int, count: int) -> str:
    if count == 1:
        return str(start)
    return f"{start},{count}"


def _header_start(index: int, count: int) -> int:
    """Convert a 0-based line index to the number written in a hunk header."""
    return index + 1 if count else index


def _strip_path_prefix(path: str) -> str:
    path = path.split("\t", 1)[0].strip()
    if path.startswith(("a/", "b/")):
        return path[2:]
    return path


# ---------------------------------------------------------------------------
# Diff engine
# ---------------------------------------------------------------------------


def compute_diff(label: str, original: str, candidate: str) -> Patch:
    """Compute the unified diff that turns *original* into *candidate*.

    The result depends only on the two inputs.  Identical inputs produce a
    patch with no hunks.
    """
    old_lines = split_lines(original)
    new_lines = split_lines(candidate)
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    hunks: list[Hunk] = []
    for group in matcher.get_grouped_opcodes(CONTEXT_LINES):
        i1, i2 = group[0][1], group[-1][2]
        j1, j2 = group[0][3], group[-1][4]
        body: list[tuple[str, str]] = []
        for tag, a1, a2, b1, b2 in group:
            if tag == "equal":
                body.extend((" ", line) for line in old_lines[a1:a2])
                continue
            if tag in ("replace", "delete"):
                body.extend(("-", line) for line in old_lines[a1:a2])
            if tag in ("replace", "insert"):
                body.extend(("+", line) for line in new_lines[b1:b2])
        hunks.append(
            Hunk(
                old_start=_header_start(i1, i2 - i1),
                old_count=i2 - i1,
                new_start=_header_start(j1, j2 - j1),
                new_count=j2 - j1,
                lines=tuple(body),
            )
        )

    return Patch(label=label, hunks=tuple(hunks), base_digest=text_digest(original))


# ---------------------------------------------------------------------------
# Patch applicator
# ---------------------------------------------------------------------------


def apply_patch(base: str, patch: Patch) -> MergeResult:
    """Apply *patch* to *base*.

    Returns a successful ``MergeResult`` holding the merged text when every
    context and removed line matches *base* at the hunk's position.  When the
    patch carries a ``base_digest`` the whole of *base* must also be the text
    the patch was computed from.  Any mismatch returns ``success=False``.
    """
    if patch.base_digest and patch.base_digest != text_digest(base):
        return MergeResult(
            success=False,
            error=f"{patch.label} has changed since the diff was computed",
        )

    base_lines = split_lines(base)
    merged: list[str] = []
    cursor = 0

    for number, hunk in enumerate(patch.hunks, start=1):
        start = hunk.old_index
        if start < cursor:
            return MergeResult(
                success=False,
                error=f"Hunk #{number} ({hunk.header}) overlaps the previous hunk",
                hunks_applied=number - 1,
            )
        if start > len(base_lines):
            return MergeResult(
                success=False,
                error=f"Hunk #{number} ({hunk.header}) starts beyond the end of {patch.label}",
                hunks_applied=number - 1,
            )

        merged.extend(base_lines[cursor:start])
        cursor = start

        for tag, line in hunk.lines:
            if tag == "+":
                merged.append(line)
                continue
            if cursor >= len(base_lines) or base_lines[cursor] != line:
                return MergeResult(
                    success=False,
                    error=(
                        f"Hunk #{number} ({hunk.header}) does not match "
                        f"{patch.label} at line {cursor + 1}"
                    ),
                    hunks_applied=number - 1,
                )
            if tag == " ":
                merged.append(line)
            cursor += 1

    merged.extend(base_lines[cursor:])
    return MergeResult(success=True, text="".join(merged), hunks_applied=len(patch.hunks))


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def parse_patch(text: str, label: str | None = None) -> Patch:
    """Parse single-file unified diff text into a ``Patch``.

    Hunk bodies are consumed by the line counts in their headers, so removed
    lines that themselves start with ``--`` are not mistaken for file headers.
    The parsed patch carries no ``base_digest``.

    Raises:
        PatchFormatError: On a malformed hunk header, an unknown line prefix or
            a hunk body shorter than its header announces.
    """
    rows = text.split("\n")
    if rows and rows[-1] == "":
        rows.pop()

    found_label = label
    hunks: list[Hunk] = []
    i = 0
    while i < len(rows):
        row = rows[i]
        if row.startswith("+++ ") and label is None:
            found_label = _strip_path_prefix(row[4:])
            i += 1
            continue
        if not row.startswith("@@"):
            # File headers and any preamble (``diff --git``, ``Index:``).
            i += 1
            continue

        match = _HUNK_RE.match(row)
        if not match:
            raise PatchFormatError(f"Malformed hunk header: {row!r}")
        old_start = int(match.group(1))
        old_count = int(match.group(2)) if match.group(2) is not None else 1
        new_start = int(match.group(3))
        new_count = int(match.group(4)) if match.group(4) is not None else 1

        body: list[tuple[str, str]] = []
        old_seen = new_seen = 0
        i += 1
        while i < len(rows):
            row = rows[i]
            if row.startswith("\\"):
                if not body:
                    raise PatchFormatError(f"Unexpected marker line: {row!r}")
                tag, line = body[-1]
                body[-1] = (tag, line.removesuffix("\n"))
                i += 1
                continue
            if old_seen >= old_count and new_seen >= new_count:
                break
            tag, content = (row[0], row[1:]) if row else (" ", "")
            if tag not in (" ", "-", "+"):
                raise PatchFormatError(f"Invalid diff line prefix {tag!r} in {row!r}")
            if tag in (" ", "-"):
                old_seen += 1
            if tag in (" ", "+"):
                new_seen += 1
            body.append((tag, content + "\n"))
            i += 1

        if old_seen != old_count or new_seen != new_count:
            raise PatchFormatError(
                f"Hunk @@ -{old_start},{old_count} +{new_start},{new_count} @@ is truncated"
            )
        hunks.append(
            Hunk(
                old_start=old_start,
                old_count=old_count,
                new_start=new_start,
                new_count=new_count,
                lines=tuple(body),
            )
        )

    return Patch(label=found_label or "file", hunks=tuple(hunks))


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


def render_patch(patch: Patch) -> Text:
    """Render *patch* as colourised Rich text for terminal review.

    Additions are green, deletions grey, hunk headers cyan.
    """
    rendered = Text()
    if patch.is_empty:
        return rendered

    rendered.append(f"--- a/{patch.label}\n", style="bold")
    rendered.append(f"+++ b/{patch.label}\n", style="bold")
    for hunk in patch.hunks:
        rendered.append(hunk.header + "\n", style="cyan")
        for tag, line in hunk.lines:
            style = {"+": "green", "-": "bright_black"}.get(tag, "")
            rendered.append(tag + line.removesuffix("\n") + "\n", style=style)
            if not line.endswith("\n"):
                rendered.append(NO_NEWLINE_MARKER + "\n", style="dim")
    rendered.rstrip()
    return rendered
