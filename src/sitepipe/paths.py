"""
Practical implementations of Matchers and PathCalcs, following the glob
conventions of gulp-style asset pipelines.
"""
from __future__ import annotations

import re
import typing as t
from pathlib import Path, PurePosixPath

from .core import Context, ContextDir, Matcher, PathCalc


_MAGIC = re.compile(r'[*?{\[]')


class GlobMatch(t.NamedTuple):
    """
    Match data produced by `GlobMatcher`: the pattern that matched and the
    directory the pattern is rooted at.
    """
    pattern: str
    base: Path


def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """
    Translate a glob into a regex over POSIX relative paths. Supports `*`,
    `?`, `**`, `{a,b}` and `[...]`.
    """
    parts: list[str] = []
    i = 0
    while i < len(pattern):
        if pattern.startswith('**/', i):
            parts.append('(?:.*/)?')
            i += 3
        elif pattern.startswith('**', i):
            parts.append('.*')
            i += 2
        elif pattern[i] == '*':
            parts.append('[^/]*')
            i += 1
        elif pattern[i] == '?':
            parts.append('[^/]')
            i += 1
        elif pattern[i] == '{' and (end := pattern.find('}', i)) != -1:
            alternatives = pattern[i + 1:end].split(',')
            parts.append('(?:' + '|'.join(re.escape(a) for a in alternatives) + ')')
            i = end + 1
        elif pattern[i] == '[' and (end := pattern.find(']', i + 1)) != -1:
            body = pattern[i + 1:end]
            if body.startswith('!'):
                body = '^' + body[1:]
            parts.append(f'[{body}]')
            i = end + 1
        else:
            parts.append(re.escape(pattern[i]))
            i += 1
    return re.compile(''.join(parts) + r'\Z')


def glob_base(pattern: str) -> PurePosixPath:
    """
    Return the leading components of @pattern that contain no glob magic.
    """
    base = PurePosixPath()
    for part in PurePosixPath(pattern).parts[:-1]:
        if _MAGIC.search(part):
            break
        base /= part
    return base


class GlobMatcher(Matcher[GlobMatch | None]):
    """
    Path Matcher using gulp-style globs relative to a configured directory.
    @patterns may be one glob or several; entries starting with `!` exclude
    paths matched by earlier entries. Dotfiles are skipped unless @dot is set.
    """
    def __init__(self,
                 patterns: str | t.Sequence[str],
                 parent_dir: ContextDir = 'source_dir',
                 dot: bool = False):
        if isinstance(patterns, str):
            patterns = [patterns]
        self.includes = [(p, glob_to_regex(p)) for p in patterns if not p.startswith('!')]
        self.excludes = [glob_to_regex(p[1:]) for p in patterns if p.startswith('!')]
        self.parent_dir: ContextDir = parent_dir
        self.dot = dot

    def __call__(self, context: Context, path: Path):
        parent = context[self.parent_dir]
        if not path.is_relative_to(parent):
            return None
        rel = path.relative_to(parent).as_posix()
        if not self.dot and any(part.startswith('.') for part in rel.split('/')):
            return None
        if any(regex.match(rel) for regex in self.excludes):
            return None
        for pattern, regex in self.includes:
            if regex.match(rel):
                return GlobMatch(pattern, parent / glob_base(pattern))
        return None


class DestPathCalc(PathCalc[GlobMatch]):
    """
    PathCalc which re-roots a matched path from its glob base into @dest
    under the Context directory @root, the way `gulp.dest()` does. A
    @stem_suffix is appended to the file stem (for `@2x` variants) and @ext,
    if given, replaces the extension.
    """
    def __init__(self,
                 dest: str | Path = '',
                 root: ContextDir = 'output_dir',
                 stem_suffix: str = '',
                 ext: str | None = None):
        self.dest = Path(dest)
        self.root: ContextDir = root
        self.stem_suffix = stem_suffix
        self.ext = ext

    def __call__(self, context: Context, path: Path, match: GlobMatch) -> Path:
        new_path = context[self.root] / self.dest / path.relative_to(match.base)
        if self.stem_suffix:
            new_path = new_path.with_stem(new_path.stem + self.stem_suffix)
        if self.ext is not None:
            new_path = new_path.with_suffix(self.ext)
        return new_path
