"""
Steps for rewriting generated HTML to reference optimized assets.
"""
from __future__ import annotations

import posixpath
import typing as t
from pathlib import Path
from urllib.parse import urlsplit

from .dependencies import Dependency, PipDependency
from .simple import BaseStandardStep


DEFAULT_SUFFIXES = {1: '', 2: '@2x', 3: '@3x'}
RESPONSIVE_EXTENSIONS = {'.jpg', '.jpeg', '.png'}


class SrcsetStep(BaseStandardStep):
    """
    A Step which adds a `srcset` to every `<img>` referencing a local JPEG or
    PNG, pointing each pixel density at the variant carrying the matching
    suffix. Images that already declare a `srcset` are left alone.
    """
    def __init__(self, suffixes: dict[int, str] | None = None):
        self.suffixes = dict(suffixes or DEFAULT_SUFFIXES)

    @classmethod
    def get_dependencies(cls) -> set[Dependency]:
        return {
            PipDependency('lxml'),
        }

    def build_srcset(self, src: str) -> str | None:
        """
        Return the srcset value for @src, or None if @src is not a local
        responsive image.
        """
        parts = urlsplit(src)
        if parts.scheme or parts.netloc:
            return None
        stem, ext = posixpath.splitext(parts.path)
        if ext.lower() not in RESPONSIVE_EXTENSIONS:
            return None
        return ', '.join(
            f'{stem}{suffix}{ext} {density}x'
            for density, suffix in sorted(self.suffixes.items())
        )

    def rewrite(self, data: str) -> str:
        import lxml.html

        # hugo writes empty pages for page kinds without a layout.
        if not data.strip():
            return data
        root = lxml.html.document_fromstring(data)
        for img in root.iter('img'):
            src = img.get('src')
            if not src or img.get('srcset') is not None:
                continue
            if srcset := self.build_srcset(src):
                img.set('srcset', srcset)
        return t.cast(str, lxml.html.tostring(
            root,
            encoding='unicode',
            doctype=root.getroottree().docinfo.doctype or None,
        ))

    def __call__(self, path: Path, output_paths: list[Path]):
        transformed = self.rewrite(path.read_text(self.encoding))
        with self.ensure_outputs(output_paths):
            output_paths[0].write_text(transformed, self.encoding, newline=self.newline)
