"""Jenkins version discovery from a war file.

The version is read from the ``jenkins-version.properties`` resource
packaged in the war.  Wars that lack it (OSS builds, most likely) carry
the version as the ``Jenkins-Version`` manifest attribute instead.

Archive access goes through the injected host; the text parsers below
are pure.
"""

from __future__ import annotations

from ath_pipeline.core.protocols import PipelineHost

VERSION_PROPERTIES = "WEB-INF/classes/jenkins/model/jenkins-version.properties"
MANIFEST_VERSION_ATTRIBUTE = "Jenkins-Version"

_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}


def get_jenkins_version(host: PipelineHost, jenkins_war: str) -> str | None:
    """Return the Jenkins version packaged in *jenkins_war*, or ``None``.

    Parameters
    ----------
    host:
        Pipeline host used to read the archive.
    jenkins_war:
        Path to the war relative to the current workspace.
    """
    files_content = host.unzip_read(jenkins_war, VERSION_PROPERTIES)
    if files_content:
        props = parse_properties(next(iter(files_content.values())))
        version = props.get("version")
        if version is not None and version.strip() != "":
            return version.strip()

    manifest = host.read_manifest(jenkins_war)
    value = manifest.get(MANIFEST_VERSION_ATTRIBUTE)
    return value.strip() if value is not None else None


# ---------------------------------------------------------------------------
# Java .properties
# ---------------------------------------------------------------------------

def _logical_lines(text: str) -> list[str]:
    """Join backslash-continued lines and drop comments and blanks."""
    lines: list[str] = []
    pending = ""
    for raw in text.splitlines():
        line = raw.lstrip(" \t\f")
        if not pending and (not line or line[0] in "#!"):
            continue
        # An odd number of trailing backslashes continues the line.
        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2 == 1:
            pending += line[:-1]
            continue
        lines.append(pending + line)
        pending = ""
    if pending:
        lines.append(pending)
    return lines


def _unescape(value: str) -> str:
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        if nxt == "u":
            digits = "".join(next(chars, "") for _ in range(4))
            try:
                out.append(chr(int(digits, 16)))
            except ValueError:
                out.append("u" + digits)
        else:
            out.append(_ESCAPES.get(nxt, nxt))
    return "".join(out)


def _split_key_value(line: str) -> tuple[str, str]:
    index = 0
    while index < len(line):
        ch = line[index]
        if ch == "\\":
            index += 2
            continue
        if ch in "=: \t\f":
            break
        index += 1
    key = line[:index]
    rest = line[index:].lstrip(" \t\f")
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(" \t\f")
    return _unescape(key), _unescape(rest)


def parse_properties(text: str) -> dict[str, str]:
    """Parse Java ``.properties`` text into a dict.

    Supports ``=``, ``:`` and whitespace separators, ``#`` / ``!``
    comments, backslash line continuations and the standard escapes.
    Later keys override earlier ones.
    """
    return dict(_split_key_value(line) for line in _logical_lines(text))


# ---------------------------------------------------------------------------
# JAR manifest
# ---------------------------------------------------------------------------

def parse_manifest(text: str) -> dict[str, str]:
    """Parse the main section of a JAR ``MANIFEST.MF``.

    Continuation lines start with a single space and are appended to
    the previous header.  Parsing stops at the first blank line, which
    ends the main section.
    """
    headers: list[list[str]] = []
    for line in text.splitlines():
        if not line:
            if headers:
                break
            continue
        if line.startswith(" ") and headers:
            headers[-1][1] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep:
            continue
        headers.append([name.strip(), value[1:] if value.startswith(" ") else value])
    return {name: value for name, value in headers}
