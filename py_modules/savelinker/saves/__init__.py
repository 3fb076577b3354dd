from .linker import SaveLinker, PathKind, PathState, inspect_path
from .paths import resolve_save_path, resolve_save_paths, cloud_path, SAVE_MAPPINGS
