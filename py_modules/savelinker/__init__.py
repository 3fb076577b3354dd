# save-game-linker
# Keeps game saves in a synced folder (symlinked back into place) and
# registers games as Steam non-Steam shortcuts.

from .config import GameItem, LinkerConfig, load_game_list
from .errors import LinkError
from .events import ItemResult, Operation, OpType, Reporter
from .runner import Runner

__version__ = "1.0.0"
