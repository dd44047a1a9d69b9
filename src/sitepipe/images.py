"""
Steps for resizing and recompressing images for production.
"""
from __future__ import annotations

import typing as t
from pathlib import Path

from .core import Step
from .dependencies import PipDependency, WebExecDependency
from .pretty_utils import print_with_style
from .simple import BaseCommandStep, BaseStandardStep

if t.TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from _typeshed import StrOrBytesPath


RESPONSIVE_WIDTHS = (1170, 2340, 3510)
RESPONSIVE_SUFFIXES = ('', '@2x', '@3x')


class OptipngStep(BaseCommandStep):
    """
    A PNG optimization step using optipng.
    """
    def __init__(self,
                 optimization_level: int | None = None,
                 extra_options: Iterable[str] = ()):
        """
        The default @optimization_level may vary based on your build of optipng
        but is probably 2. Extra flags may be supplied using @extra_options.
        """
        self.options = ['-o', str(optimization_level)] if optimization_level is not None else []
        self.options.extend(extra_options)

    @classmethod
    def get_dependencies(cls):
        return super().get_dependencies() | {
            WebExecDependency('optipng', 'http://optipng.sourceforge.net'),
        }

    def get_command(self, input_path: Path, output_path: Path) -> list[StrOrBytesPath]:
        if input_path == output_path:
            return ['optipng', '-quiet', *self.options, input_path]
        return ['optipng', '-quiet', *self.options, input_path, '-out', output_path]


class GifsicleStep(BaseCommandStep):
    """
    A GIF optimization step using gifsicle.
    """
    def __init__(self,
                 optimization_level: int = 3,
                 interlaced: bool = True,
                 extra_options: Iterable[str] = ()):
        self.options = [f'-O{optimization_level}']
        if interlaced:
            self.options.append('--interlace')
        self.options.extend(extra_options)

    @classmethod
    def get_dependencies(cls):
        return super().get_dependencies() | {
            WebExecDependency('gifsicle', 'https://www.lcdf.org/gifsicle/'),
        }

    def get_command(self, input_path: Path, output_path: Path) -> list[StrOrBytesPath]:
        if input_path == output_path:
            return ['gifsicle', '--batch', *self.options, input_path]
        return ['gifsicle', *self.options, input_path, '-o', output_path]


class ScourStep(BaseStandardStep):
    """
    SVG cleanup using scour: drops comments, metadata, titles, descriptions,
    editor data and the XML prolog, collapses groups and shortens IDs.
    """
    default_options = {
        'strip_comments': True,
        'remove_metadata': True,
        'remove_descriptive_elements': True,
        'strip_xml_prolog': True,
        'keep_editor_data': False,
        'group_collapse': True,
        'strip_ids': True,
        'shorten_ids': True,
        'enable_viewboxing': True,
        'strip_xml_space_attribute': True,
    }

    @classmethod
    def get_dependencies(cls):
        return {
            PipDependency('scour'),
        }

    def __init__(self, options: dict[str, t.Any] | None = None):
        self.options = dict(self.default_options)
        if options:
            self.options.update(options)

    def __call__(self, path: Path, output_paths: list[Path]):
        from scour import scour

        options = scour.sanitizeOptions()
        for key, value in self.options.items():
            setattr(options, key, value)
        data = scour.scourString(path.read_text(self.encoding), options)
        with self.ensure_outputs(output_paths):
            output_paths[0].write_text(data, self.encoding, newline=self.newline)


class ResponsiveImageStep(Step):
    """
    Produces one resized copy of a JPEG or PNG per output path, the first
    output at the first of @widths and so on. Images are never enlarged: if a
    width exceeds the source, the source size is kept. JPEGs are saved
    progressive and optimized; PNGs are optimized and then handed to
    @png_optimizer when it is available.
    """
    def __init__(self,
                 widths: Sequence[int] = RESPONSIVE_WIDTHS,
                 quality: int = 85,
                 png_optimizer: BaseCommandStep | None = None):
        self.widths = list(widths)
        self.quality = quality
        self.png_optimizer = png_optimizer if png_optimizer is not None else OptipngStep(7)

    @classmethod
    def get_dependencies(cls):
        return super().get_dependencies() | {
            PipDependency('Pillow', check_name='PIL'),
        }

    def target_size(self, size: tuple[int, int], width: int):
        """
        Scale @size to @width, preserving aspect ratio, without enlarging.
        """
        src_width, src_height = size
        if width >= src_width:
            return size
        return width, max(1, round(src_height * width / src_width))

    def save_options(self, image_format: str | None) -> dict[str, t.Any]:
        if image_format == 'JPEG':
            return {'quality': self.quality, 'optimize': True, 'progressive': True}
        if image_format == 'PNG':
            return {'optimize': True}
        return {}

    def __call__(self, path: Path, output_paths: list[Path]):
        from PIL import Image

        # Outputs may overwrite the source, so decode it fully up front.
        with Image.open(path) as img:
            img.load()
            source = img.copy()
            image_format = img.format

        optimize_png = image_format == 'PNG' and self.png_optimizer.is_available()
        if image_format == 'PNG' and not optimize_png:
            print_with_style(f'Skipping PNG recompression for {path}: optimizer unavailable', style='yellow')

        for width, target_path in zip(self.widths, output_paths):
            size = self.target_size(source.size, width)
            resized = source if size == source.size else source.resize(size, Image.Resampling.LANCZOS)
            target_path.parent.mkdir(parents=True, exist_ok=True)
            resized.save(target_path, format=image_format, **self.save_options(image_format))
            if optimize_png:
                self.png_optimizer.run(target_path, target_path)
