"""
Internal utilities for pretty printing and timestamped build logs.
"""
import sys

import rich.console


_rich_consoles = {
    'stdout': rich.console.Console(file=sys.stdout),
    'stderr': rich.console.Console(file=sys.stderr),
}


def print_with_style(*args, sep=' ', end='\n', file: str = 'stdout', style=None):
    """
    Enhanced print() function which supports rich console styles.
    """
    _rich_consoles[file].print(*args, sep=sep, end=end, style=style, markup=False)


def log(label: str, *args, file: str = 'stdout', style=None):
    """
    Timestamped log line tagged with a @label such as `[webpack]`.
    """
    _rich_consoles[file].log(label, *args, style=style, markup=False, highlight=False)
