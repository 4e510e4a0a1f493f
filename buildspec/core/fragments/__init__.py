from .bob import parse_bob_builder
from .files import load_files, read_fragment_file
from .gradle_kts import parse_gradle_kts

__all__ = ["load_files", "parse_bob_builder", "parse_gradle_kts", "read_fragment_file"]
