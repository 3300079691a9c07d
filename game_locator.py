"""
Game Locator
Finds the game installation directory inside the Steam/Proton libraries
"""

from pathlib import Path

from addon_errors import GameNotFoundError


class GameLocator:
    def __init__(self, game_config):
        self.game_config = game_config

    def resolve(self):
        """Return the first candidate directory that exists.

        Falls back to the first candidate when none exists so the caller
        reports a single "not installed" error once it needs the directory.

        Returns:
            Path - Game directory (not guaranteed to exist)
        """
        candidates = self.game_config.candidates()
        for candidate in candidates:
            if candidate.is_dir():
                return candidate
        return candidates[0]

    @staticmethod
    def require(game_dir):
        """Validate a resolved directory before mutating it.

        Raises:
            GameNotFoundError - If the directory is missing
        """
        game_dir = Path(game_dir)
        if not game_dir.is_dir():
            raise GameNotFoundError(f'Game directory not found: {game_dir}')
        return game_dir
