# SPDX-FileCopyrightText: 2023-present ferstar <zhangjianfei3@gmail.com>
#
# SPDX-License-Identifier: MIT
import argparse
import bisect
import concurrent.futures
import fnmatch
import json
import logging
import os
import re
import sys
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import NamedTuple

import pathspec

logger = logging.getLogger(__name__)

# Constants
MAX_WORKERS_LIMIT = 64
MANIFEST_NAME = "package.json"
DIALECTS = {".ts": "typescript", ".tsx": "tsx"}
DEFAULT_EXCLUDED_DIRS = frozenset({".git", "bower_components", "build", "dist", "node_modules"})
FAIL_ON_CHOICES = ("never", "unused", "missing", "any")

# Root names of the modules bundled with Node.js; `node:`-prefixed specifiers never resolve at all.
NODE_BUILTINS = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "sys",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)

PACKAGE_NAME_P = re.compile(r"^(?:@[a-z0-9~-][a-z0-9._~-]*/)?[a-z0-9-][a-z0-9._~-]*$", re.I)
PACKAGE_NAME_MAX_LENGTH = 214
IDENTIFIER_P = re.compile(r"[\w$]+")
NUMBER_P = re.compile(r"[\w.]+")
REGEX_FLAGS_P = re.compile(r"[a-z]*", re.I)

# Keywords after which a `/` starts a regular expression literal rather than a division.
REGEX_PRECEDING_KEYWORDS = frozenset(
    {"await", "case", "delete", "do", "else", "in", "instanceof", "new", "of", "return", "throw", "typeof", "void", "yield"}
)


class DepcheckError(Exception):
    """Base class for errors reported by check-package-json."""


class DirectoryNotFound(DepcheckError):
    pass


class ManifestReadError(DepcheckError):
    pass


class ParseError(DepcheckError):
    """A single source file could not be tokenized."""

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        super().__init__(f"line {line}: {message}" if line else message)


class SerializeError(DepcheckError):
    pass


class CheckCancelled(DepcheckError):
    pass


class Specifier(NamedTuple):
    """The literal module string of an import/require and where it was written."""

    value: str
    line: int
    column: int


class Token(NamedTuple):
    kind: str
    value: str
    offset: int


class FileOutcome(NamedTuple):
    """Result of checking one file: the packages it uses, or why it could not be parsed."""

    path: str
    packages: frozenset[str]
    error: str | None = None


@dataclass(frozen=True)
class Config:
    directory: Path
    ignore_bin_package: bool = False
    skip_missing: bool = False
    ignore_path: Path | None = None
    ignore_patterns: tuple[str, ...] = ()
    ignore_matches: tuple[str, ...] = ()
    include_dev: bool = False
    respect_gitignore: bool = True
    parallel: bool = False
    max_workers: int = 4


@dataclass(frozen=True)
class CheckResult:
    using_dependencies: dict[str, frozenset[str]] = field(default_factory=dict)
    unused_dependencies: frozenset[str] = frozenset()
    missing_dependencies: frozenset[str] = frozenset()
    diagnostics: dict[str, str] = field(default_factory=dict)

    def files_using(self, package_name: str) -> list[str]:
        """Return the relative paths of the files that use ``package_name``."""
        return [path for path, packages in self.using_dependencies.items() if package_name in packages]

    def to_dict(self) -> dict:
        return {
            "using_dependencies": {path: sorted(packages) for path, packages in self.using_dependencies.items()},
            "unused_dependencies": sorted(self.unused_dependencies),
            "missing_dependencies": sorted(self.missing_dependencies),
            "diagnostics": dict(self.diagnostics),
        }


class IgnoreFilter:
    """Gitignore-style matcher for paths below the project root."""

    def __init__(
        self,
        ignore_path: Path | None = None,
        patterns: Iterable[str] = (),
        *,
        respect_gitignore: bool = True,
        base_path: Path | None = None,
    ):
        """Initialize the IgnoreFilter.

        Args:
            ignore_path: File of ignore patterns. If None and respect_gitignore is set,
                         the .gitignore found in base_path is used when present.
            patterns: Extra patterns, relative to base_path.
            respect_gitignore: Whether to fall back to base_path/.gitignore.
            base_path: Root the patterns are relative to. Defaults to cwd.
        """
        self.base_path = Path(base_path) if base_path is not None else Path.cwd()
        self.patterns: list[str] = []

        if ignore_path is None and respect_gitignore:
            gitignore = self.base_path / ".gitignore"
            if gitignore.is_file():
                ignore_path = gitignore

        if ignore_path is not None:
            self.patterns.extend(self._load_patterns(Path(ignore_path)))
        self.patterns.extend(p.strip() for p in patterns if p.strip())
        self.spec = pathspec.GitIgnoreSpec.from_lines(self.patterns)

    @staticmethod
    def _load_patterns(ignore_path: Path) -> list[str]:
        """Load patterns from an ignore file, skipping comments and blank lines."""
        try:
            with open(ignore_path, encoding="utf-8") as f:
                lines = [line.rstrip("\r\n") for line in f]
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read ignore file %s: %s", ignore_path, e)
            return []
        return [line for line in lines if line.strip() and not line.startswith("#")]

    def should_ignore(self, path: Path, base_path: Path | None = None) -> bool:
        """Check if a path should be ignored.

        Args:
            path: The path to check, absolute or relative to base_path.
            base_path: Base path for relative pattern matching. If None, uses the filter's base path.

        Returns:
            True if the path should be ignored, False otherwise.
        """
        if not self.patterns:
            return False

        base_path = Path(base_path) if base_path is not None else self.base_path
        full_path = path if path.is_absolute() else base_path / path
        try:
            rel_path = full_path.relative_to(base_path)
        except ValueError:
            # Path is not below base_path
            return False

        rel_path_str = rel_path.as_posix()
        if rel_path_str in ("", "."):
            return False
        if full_path.is_dir():
            rel_path_str += "/"
        return self.spec.match_file(rel_path_str)


def supports_color() -> bool:
    """Check if the terminal supports color output."""
    # Check environment variables first
    if os.environ.get("NO_COLOR"):
        return False

    if os.environ.get("FORCE_COLOR"):
        return True

    # Check if output is redirected
    if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
        return False

    term = os.environ.get("TERM", "") or ""
    if term.lower() in ("dumb", "unknown"):
        return False

    return True


def colorize(text: str, color_code: str) -> str:
    """Add color to text if terminal supports it."""
    if supports_color():
        return f"\033[{color_code}m{text}\033[0m"
    return text


def red(text: str) -> str:
    return colorize(text, "91")


def yellow(text: str) -> str:
    return colorize(text, "93")


def _scan_string(source: str, start: int) -> int | None:
    """Return the index of the closing quote, or None if the line ends first."""
    quote = source[start]
    i = start + 1
    while i < len(source):
        char = source[i]
        if char == "\\":
            i += 2
            continue
        if char == quote:
            return i
        if char in "\r\n":
            return None
        i += 1
    return None


def _scan_template(source: str, start: int) -> tuple[int, bool]:
    """Scan template literal text from ``start``.

    Returns the index after the closing backtick or after an opening ``${``,
    and whether a substitution was opened.
    """
    i = start
    while i < len(source):
        char = source[i]
        if char == "\\":
            i += 2
            continue
        if char == "`":
            return i + 1, False
        if source.startswith("${", i):
            return i + 2, True
        i += 1
    raise ParseError("unterminated template literal")


def _scan_regex(source: str, start: int) -> int | None:
    """Return the index after a regular expression literal, or None if it is not one."""
    in_class = False
    i = start + 1
    while i < len(source):
        char = source[i]
        if char == "\\":
            i += 2
            continue
        if char in "\r\n":
            return None
        if in_class:
            if char == "]":
                in_class = False
        elif char == "[":
            in_class = True
        elif char == "/":
            return REGEX_FLAGS_P.match(source, i + 1).end()
        i += 1
    return None


def _regex_allowed(prev: Token | None) -> bool:
    if prev is None:
        return True
    if prev.kind == "punct":
        return prev.value not in ")]}"
    return prev.kind == "name" and prev.value in REGEX_PRECEDING_KEYWORDS


def _tokenize(source: str, dialect: str = "typescript") -> Iterator[Token]:
    """Split source text into names, strings and punctuation.

    Comments and whitespace are dropped. Template literals and regular
    expression literals are single opaque tokens so that their contents are
    never mistaken for code. A quote that is not closed on its line (JSX text
    such as ``Don't``) is treated as punctuation. In ``tsx``, a ``/*`` that is
    never closed is JSX text too (``src/*.ts``) and becomes punctuation.
    """
    # "{" for blocks and object literals, "`" for open template substitutions
    braces: list[str] = []
    prev: Token | None = None
    i = 0
    n = len(source)
    while i < n:
        char = source[i]
        if char.isspace():
            i += 1
            continue
        if source.startswith("//", i):
            end = source.find("\n", i)
            i = n if end == -1 else end
            continue
        block_end = source.find("*/", i + 2) if source.startswith("/*", i) else None
        if block_end is not None and block_end != -1:
            i = block_end + 2
            continue
        if block_end == -1 and dialect != "tsx":
            raise ParseError("unterminated block comment", source.count("\n", 0, i) + 1)

        if block_end == -1:
            token = Token("punct", char, i)
            i += 1
        elif char in "'\"":
            end = _scan_string(source, i)
            if end is None:
                token = Token("punct", char, i)
                i += 1
            else:
                token = Token("string", source[i + 1 : end], i)
                i = end + 1
        elif char == "`" or (char == "}" and braces and braces[-1] == "`"):
            if char == "}":
                braces.pop()
            try:
                end, opened = _scan_template(source, i + 1)
            except ParseError as e:
                raise ParseError(str(e), source.count("\n", 0, i) + 1) from None
            if opened:
                braces.append("`")
            token = Token("template", "", i)
            i = end
        elif char == "/" and _regex_allowed(prev):
            end = _scan_regex(source, i)
            if end is None:
                token = Token("punct", char, i)
                i += 1
            else:
                token = Token("regex", source[i:end], i)
                i = end
        elif char.isalpha() or char in "_$":
            match = IDENTIFIER_P.match(source, i)
            token = Token("name", match.group(), i)
            i = match.end()
        elif char.isdigit():
            match = NUMBER_P.match(source, i)
            token = Token("number", match.group(), i)
            i = match.end()
        else:
            if char == "{":
                braces.append("{")
            elif char == "}" and braces:
                braces.pop()
            token = Token("punct", char, i)
            i += 1

        prev = token
        yield token


def _is_punct(token: Token | None, values: str) -> bool:
    return token is not None and token.kind == "punct" and token.value in values


def _from_clause_source(tokens: list[Token], start: int) -> Token | None:
    """Find the string after ``from`` in an import/export clause starting at ``start``."""
    for idx in range(start, len(tokens)):
        token = tokens[idx]
        if token.kind in ("string", "template") or _is_punct(token, ";=("):
            return None
        if token.kind != "name":
            continue
        if token.value in ("import", "export"):
            return None
        if token.value == "from" and idx + 1 < len(tokens) and tokens[idx + 1].kind == "string":
            return tokens[idx + 1]
    return None


def _iter_specifiers(source: str, dialect: str) -> Iterator[Specifier]:
    tokens = list(_tokenize(source, dialect))
    line_starts = [0] + [m.end() for m in re.finditer(r"\n", source)]

    def at(idx: int) -> Token | None:
        return tokens[idx] if idx < len(tokens) else None

    def specifier(token: Token) -> Specifier:
        line = bisect.bisect_right(line_starts, token.offset)
        return Specifier(token.value, line, token.offset - line_starts[line - 1] + 1)

    for idx, token in enumerate(tokens):
        if token.kind != "name" or token.value not in ("import", "export", "require"):
            continue
        # Member access such as `foo.require(...)` or `import.meta`
        if idx and _is_punct(tokens[idx - 1], "."):
            continue
        following = at(idx + 1)
        if following is None:
            continue

        if _is_punct(following, "("):
            argument, closing = at(idx + 2), at(idx + 3)
            if (
                token.value != "export"
                and argument is not None
                and argument.kind == "string"
                and _is_punct(closing, "),")
            ):
                yield specifier(argument)
            continue
        if token.value == "require":
            continue
        if token.value == "import" and following.kind == "string":
            yield specifier(following)
            continue
        if token.value == "export" and not (
            _is_punct(following, "*{") or (following.kind == "name" and following.value == "type")
        ):
            continue

        source_token = _from_clause_source(tokens, idx + 1)
        if source_token is not None:
            yield specifier(source_token)


def extract_specifiers(source: str, dialect: str) -> Iterator[Specifier]:
    """Extract import/require specifiers from source text.

    The returned iterator is lazy: a ``ParseError`` surfaces while iterating.

    Args:
        source: The file text.
        dialect: One of the values of ``DIALECTS``.

    Returns:
        Iterator of Specifier in source order.
    """
    if dialect not in DIALECTS.values():
        msg = f"unsupported dialect: {dialect!r}"
        raise ValueError(msg)
    return _iter_specifiers(source, dialect)


def resolve_package_name(specifier: str) -> str | None:
    """Map a specifier to the root package name it refers to.

    Relative and absolute paths resolve to None. Scoped packages keep their
    scope: ``@scope/pkg/sub/path`` resolves to ``@scope/pkg``.
    """
    if not specifier or specifier.startswith((".", "/")):
        return None

    segments = specifier.split("/")
    if segments[0].startswith("@"):
        if len(segments) < 2:
            return None
        name = "/".join(segments[:2])
    else:
        name = segments[0]

    if len(name) > PACKAGE_NAME_MAX_LENGTH or not PACKAGE_NAME_P.match(name):
        return None
    return name


def walk_source_files(directory: Path, ignore_filter: IgnoreFilter | None = None) -> list[Path]:
    """Find the source files below ``directory``, sorted by relative path.

    Dependency-install and build-output directories are never entered.
    Unreadable entries are logged and skipped.
    """
    directory = Path(directory)
    found: list[Path] = []

    def on_error(error: OSError) -> None:
        logger.warning("Skipping unreadable entry %s: %s", error.filename, error.strerror)

    for dirpath, dirnames, filenames in os.walk(directory, onerror=on_error):
        current = Path(dirpath)
        dirnames[:] = [
            name
            for name in dirnames
            if name not in DEFAULT_EXCLUDED_DIRS
            and not (ignore_filter and ignore_filter.should_ignore(current / name, directory))
        ]
        for name in filenames:
            path = current / name
            if path.suffix.lower() not in DIALECTS:
                continue
            if ignore_filter and ignore_filter.should_ignore(path, directory):
                logger.debug("Ignoring %s", path)
                continue
            if not path.is_file():
                logger.warning("Skipping %s: not a readable file", path)
                continue
            found.append(path)

    return sorted(found, key=lambda p: p.relative_to(directory).as_posix())


def check_file(path: Path, directory: Path) -> FileOutcome:
    """Collect the packages a single source file uses.

    Failures are confined to the file: an undecodable or unparsable file
    contributes no packages and carries the error message instead.
    """
    rel_path = path.relative_to(directory).as_posix()
    dialect = DIALECTS[path.suffix.lower()]
    try:
        with open(path, encoding="utf-8") as file_obj:
            source = file_obj.read()
        packages = frozenset(
            name
            for name in (resolve_package_name(s.value) for s in extract_specifiers(source, dialect))
            if name is not None
        )
    except (ParseError, UnicodeDecodeError, OSError) as e:
        logger.warning("Failed to parse %s: %s", rel_path, e)
        return FileOutcome(rel_path, frozenset(), str(e))
    logger.debug("%s uses %s", rel_path, sorted(packages))
    return FileOutcome(rel_path, packages)


def _check_file_unless_cancelled(
    path: Path, directory: Path, cancel_event: threading.Event | None
) -> FileOutcome:
    if cancel_event is not None and cancel_event.is_set():
        raise CheckCancelled("check cancelled")
    return check_file(path, directory)


def collect_usage(
    paths: Iterable[Path],
    directory: Path,
    *,
    use_parallel: bool = False,
    max_workers: int = 4,
    cancel_event: threading.Event | None = None,
) -> tuple[dict[str, frozenset[str]], dict[str, str]]:
    """Build the per-file usage map.

    Args:
        paths: Source files, as produced by walk_source_files.
        directory: Project root the map keys are relative to.
        use_parallel: Check files on a thread pool.
        max_workers: Thread pool size.
        cancel_event: When set, remaining files are skipped and CheckCancelled is raised.

    Returns:
        The usage map sorted by path and the parse diagnostics per path.
    """
    directory = Path(directory)
    outcomes: list[FileOutcome] = []

    if use_parallel:
        # Use ThreadPoolExecutor for I/O bound tasks
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = [
                executor.submit(_check_file_unless_cancelled, path, directory, cancel_event) for path in paths
            ]
            try:
                for future in concurrent.futures.as_completed(futures):
                    outcomes.append(future.result())
            except BaseException:
                if cancel_event is not None:
                    cancel_event.set()
                executor.shutdown(wait=True, cancel_futures=True)
                raise
    else:
        for path in paths:
            outcomes.append(_check_file_unless_cancelled(path, directory, cancel_event))

    outcomes.sort(key=lambda outcome: outcome.path)
    usage = {outcome.path: outcome.packages for outcome in outcomes}
    diagnostics = {outcome.path: outcome.error for outcome in outcomes if outcome.error is not None}
    return usage, diagnostics


def union_used(usage: Mapping[str, Iterable[str]]) -> set[str]:
    return set().union(*usage.values())


def apply_ignore_matches(names: Iterable[str], ignore_matches: Iterable[str]) -> set[str]:
    """Drop the names matching any ignore pattern (literal names or shell-style globs)."""
    patterns = list(ignore_matches)
    return {name for name in names if not any(fnmatch.fnmatchcase(name, p) for p in patterns)}


def diff_dependencies(
    declared: Iterable[str],
    used: Iterable[str],
    *,
    skip_missing: bool = False,
    builtins: Iterable[str] = frozenset(),
) -> tuple[set[str], set[str]]:
    """Return ``(unused, missing)`` for the declared and used package names.

    Builtins never count as missing. With skip_missing the missing set is empty.
    """
    declared = set(declared)
    used = set(used)
    unused = declared - used
    missing = set() if skip_missing else used - declared - set(builtins)
    return unused, missing


def _read_json(path: Path):
    with open(path, encoding="utf-8-sig") as f:
        return json.load(f)


def _has_bin_entry(directory: Path, package_name: str) -> bool:
    manifest = Path(directory) / "node_modules" / package_name / MANIFEST_NAME
    try:
        data = _read_json(manifest)
    except (OSError, ValueError) as e:
        logger.debug("Cannot read installed manifest of %s: %s", package_name, e)
        return False
    return isinstance(data, dict) and bool(data.get("bin"))


def find_bin_packages(directory: Path, package_names: Iterable[str]) -> set[str]:
    """Return the packages whose installed manifest declares a bin entry."""
    return {name for name in package_names if _has_bin_entry(directory, name)}


def load_manifest(directory: Path, *, include_dev: bool = False) -> dict[str, str]:
    """Load the declared dependencies of the project in ``directory``.

    Args:
        directory: Project root holding package.json.
        include_dev: Also treat devDependencies as declared.

    Returns:
        Mapping of package name to version constraint.

    Raises:
        ManifestReadError: package.json is missing or malformed.
    """
    path = Path(directory) / MANIFEST_NAME
    try:
        data = _read_json(path)
    except OSError as e:
        msg = f"failed to read {path}: {e.strerror or e}"
        raise ManifestReadError(msg) from e
    except ValueError as e:
        msg = f"failed to parse {path}: {e}"
        raise ManifestReadError(msg) from e

    if not isinstance(data, dict):
        msg = f"failed to parse {path}: expected a JSON object"
        raise ManifestReadError(msg)

    sections = ["dependencies", "devDependencies"] if include_dev else ["dependencies"]
    declared: dict[str, str] = {}
    for section in sections:
        dependencies = data.get(section) or {}
        if not isinstance(dependencies, dict):
            msg = f'failed to parse {path}: "{section}" must be an object'
            raise ManifestReadError(msg)
        for name, constraint in dependencies.items():
            declared[name] = str(constraint)
    return declared


def check_package(config: Config, *, cancel_event: threading.Event | None = None) -> CheckResult:
    """Find the unused and missing dependencies of the project described by ``config``."""
    directory = Path(config.directory).absolute()
    if not directory.is_dir():
        msg = f"directory not found: {directory}"
        raise DirectoryNotFound(msg)

    declared = load_manifest(directory, include_dev=config.include_dev)
    ignore_filter = IgnoreFilter(
        config.ignore_path,
        config.ignore_patterns,
        respect_gitignore=config.respect_gitignore,
        base_path=directory,
    )
    paths = walk_source_files(directory, ignore_filter)
    logger.info("Checking %d source file(s) under %s", len(paths), directory)

    usage, diagnostics = collect_usage(
        paths,
        directory,
        use_parallel=config.parallel,
        max_workers=config.max_workers,
        cancel_event=cancel_event,
    )
    used = apply_ignore_matches(union_used(usage), config.ignore_matches)
    declared_names = apply_ignore_matches(declared, config.ignore_matches)
    unused, missing = diff_dependencies(
        declared_names,
        used,
        skip_missing=config.skip_missing,
        builtins=NODE_BUILTINS,
    )
    # Bin packages stay declared, they are only never reported as unused
    if config.ignore_bin_package:
        unused -= find_bin_packages(directory, unused)
    return CheckResult(
        using_dependencies=usage,
        unused_dependencies=frozenset(unused),
        missing_dependencies=frozenset(missing),
        diagnostics=diagnostics,
    )


def render_text(result: CheckResult, *, show_usage: bool = False) -> str:
    """Render the result as colored text sections.

    With show_usage the packages imported by each scanned file are listed first.
    """
    usage_lines: list[str] = []
    if show_usage:
        usage_lines.append("Dependencies by file:")
        for path, packages in result.using_dependencies.items():
            usage_lines.append(f"  {path}")
            usage_lines.extend(f"    - {name}" for name in sorted(packages))
            if not packages:
                usage_lines.append("    (none)")
    lines: list[str] = []
    if result.unused_dependencies:
        lines.append(yellow("Unused dependencies:"))
        lines.extend(f"  - {name}" for name in sorted(result.unused_dependencies))
    if result.missing_dependencies:
        lines.append(red("Missing dependencies:"))
        for name in sorted(result.missing_dependencies):
            lines.append(f"  - {name}")
            lines.extend(f"      {path}" for path in result.files_using(name))
    if result.diagnostics:
        lines.append(yellow("Files that could not be parsed:"))
        lines.extend(f"  - {path}: {error}" for path, error in result.diagnostics.items())
    if not lines:
        lines.append("No depcheck issue")
    return "\n".join(usage_lines + lines)


def render_json(result: CheckResult) -> str:
    try:
        return json.dumps(result.to_dict(), indent=2)
    except (TypeError, ValueError) as e:
        msg = f"failed to serialize result: {e}"
        raise SerializeError(msg) from e


def exit_status(result: CheckResult, fail_on: str) -> int:
    has_unused = bool(result.unused_dependencies)
    has_missing = bool(result.missing_dependencies)
    failed = {
        "never": False,
        "unused": has_unused,
        "missing": has_missing,
        "any": has_unused or has_missing,
    }[fail_on]
    return int(failed)


def param_as_set(value: str) -> set[str]:
    return {v.strip() for v in value.split(",") if v.strip()}


def param_as_list(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def existing_directory(value: str) -> Path:
    path = Path(value)
    if not path.is_dir():
        msg = f"directory not found: {value}"
        raise argparse.ArgumentTypeError(msg)
    return path


def configure_logging(verbose: int = 0, *, quiet: bool = False) -> None:
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(format="%(levelname)s: %(message)s", stream=sys.stderr)
    logger.setLevel(level)


def run(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="check-package-json",
        description="Find unused and missing dependencies of a TypeScript project.",
    )
    parser.add_argument(
        "-d",
        "--directory",
        type=existing_directory,
        default=Path(),
        help="the root directory of your project (default: current directory)",
    )
    parser.add_argument(
        "--ignore-bin-package",
        action="store_true",
        help="ignore the packages containing bin entry",
    )
    parser.add_argument(
        "--skip-missing",
        action="store_true",
        help="skip calculation of missing dependencies",
    )
    parser.add_argument(
        "--ignore-path",
        type=Path,
        help="path to a file with patterns describing files to ignore (default: .gitignore)",
    )
    parser.add_argument(
        "--ignore-patterns",
        type=param_as_list,
        default=[],
        help="patterns,describing,files,or,directories,to,ignore",
    )
    parser.add_argument(
        "--ignore-matches",
        "--ignore_matches",
        dest="ignore_matches",
        type=param_as_set,
        default=set(),
        help="package,names,to,ignore (shell-style globs allowed)",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="also treat devDependencies as declared",
    )
    parser.add_argument(
        "--no-gitignore",
        action="store_true",
        help="do not use .gitignore when --ignore-path is not given",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="use parallel processing for faster file scanning",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=4,
        help="maximum number of worker threads for parallel processing (default: 4)",
    )
    parser.add_argument(
        "--format",
        choices=("text", "json"),
        default="text",
        help="output format (default: text)",
    )
    parser.add_argument(
        "--show-usage",
        action="store_true",
        help="list the packages imported by each file (text format)",
    )
    parser.add_argument(
        "--fail-on",
        choices=FAIL_ON_CHOICES,
        default="never",
        help="exit with status 1 when unused and/or missing dependencies are found (default: never)",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0, help="more log output (repeatable)")
    parser.add_argument("-q", "--quiet", action="store_true", help="only log errors")
    args = parser.parse_args(argv)

    # Validate max_workers parameter
    if args.max_workers < 1:
        parser.error("--max-workers must be at least 1")
    if args.max_workers > MAX_WORKERS_LIMIT:
        parser.error(f"--max-workers should not exceed {MAX_WORKERS_LIMIT}")

    configure_logging(args.verbose, quiet=args.quiet)

    config = Config(
        directory=args.directory,
        ignore_bin_package=args.ignore_bin_package,
        skip_missing=args.skip_missing,
        ignore_path=args.ignore_path,
        ignore_patterns=tuple(args.ignore_patterns),
        ignore_matches=tuple(sorted(args.ignore_matches)),
        include_dev=args.dev,
        respect_gitignore=not args.no_gitignore,
        parallel=args.parallel,
        max_workers=args.max_workers,
    )

    cancel_event = threading.Event()
    try:
        result = check_package(config, cancel_event=cancel_event)
        output = render_json(result) if args.format == "json" else render_text(result, show_usage=args.show_usage)
    except KeyboardInterrupt:
        cancel_event.set()
        print(red("Interrupted"), file=sys.stderr)
        return 130
    except DepcheckError as e:
        print(red(f"Error: {e}"), file=sys.stderr)
        return 2

    print(output)
    return exit_status(result, args.fail_on)


def main() -> None:
    """Main entry point for the application."""
    sys.exit(run())


if __name__ == "__main__":
    main()
