"""
Addon Config
Immutable descriptions of the game and of the two managed add-ons
"""

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class Channel(Enum):
    STABLE = 'stable'
    PREVIEW = 'next'

    @classmethod
    def parse(cls, value):
        """Map a CLI or settings spelling to a channel.

        Args:
            value: str/Channel - 'stable', 'next' or 'preview'

        Returns:
            Channel - Parsed channel

        Raises:
            ValueError - If the spelling is unknown
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        if normalized == 'preview':
            return cls.PREVIEW
        return cls(normalized)


ARCHIVE_EXTENSIONS = ('.zip', '.tar.gz', '.tgz', '.tar.xz')
DISABLED_SUFFIX = '.disabled'
BACKUP_SUFFIX = '.bak'

STEAM_LIBRARY_ROOTS = (
    '~/.steam/steam/steamapps/common',
    '~/.local/share/Steam/steamapps/common',
    '~/.var/app/com.valvesoftware.Steam/.local/share/Steam/steamapps/common',
    '~/.steam/debian-installation/steamapps/common',
    '/run/media/mmcblk0p1/steamapps/common',
)


@dataclass(frozen=True)
class GameConfig:
    folder: str
    library_roots: tuple = STEAM_LIBRARY_ROOTS
    extra_candidates: tuple = ()

    def candidates(self):
        """Ordered list of directories the game may be installed in."""
        paths = [Path(p).expanduser() for p in self.extra_candidates]
        paths.extend(Path(root).expanduser() / self.folder for root in self.library_roots)
        return paths


@dataclass(frozen=True)
class AddonConfig:
    """Everything one add-on manager needs to know about its add-on.

    Filenames are relative to the game directory. An add-on without a
    chainload name only ever occupies the primary slots.
    """
    key: str
    display_name: str
    primary_name: str
    chainload_name: str = None
    disabled_suffix: str = DISABLED_SUFFIX
    # Release feed distribution (overlay)
    feed_url: str = None
    launcher_name: str = None
    payload_subpath: str = None
    companion_files: tuple = ()
    install_path: Path = None
    # Fixed-URL distribution (patch)
    download_url: str = None
    digest_manifest_urls: dict = field(default_factory=dict)
    backup_suffix: str = None
    # Identification of the other add-on sitting in the primary slot
    third_party_name: str = None
    third_party_digest_url: str = None
    promote_on_enable: bool = False
    hash_algorithm: str = 'sha256'

    @property
    def uses_release_feed(self):
        return self.feed_url is not None


GAME = GameConfig(folder='ELDEN RING/Game')

PATCH_DIGEST_URL = 'https://github.com/proxy-addons/patch/releases/latest/download/dinput8.dll.sha256'

PATCH = AddonConfig(
    key='patch',
    display_name='Patch',
    primary_name='dinput8.dll',
    download_url='https://github.com/proxy-addons/patch/releases/latest/download/dinput8.dll',
    digest_manifest_urls={Channel.STABLE: PATCH_DIGEST_URL},
    backup_suffix=BACKUP_SUFFIX,
)

OVERLAY = AddonConfig(
    key='overlay',
    display_name='Overlay',
    primary_name='dinput8.dll',
    chainload_name='overlay_chain.dll',
    feed_url='https://api.github.com/repos/proxy-addons/overlay/releases',
    launcher_name='OverlayLauncher.exe',
    payload_subpath='bin/dinput8.dll',
    companion_files=('d3dcompiler_47.dll',),
    install_path=Path('~/.local/share/proxy-addons/overlay').expanduser(),
    third_party_name=PATCH.display_name,
    third_party_digest_url=PATCH_DIGEST_URL,
    promote_on_enable=True,
)

ADDONS = {addon.key: addon for addon in (OVERLAY, PATCH)}


def apply_settings(game, addon, settings):
    """Overlay user settings on top of the built-in configuration.

    Args:
        game: GameConfig - Built-in game configuration
        addon: AddonConfig - Built-in add-on configuration
        settings: SettingsStore - Loaded settings file

    Returns:
        tuple - (GameConfig, AddonConfig) with overrides applied
    """
    game_path = settings.get_setting('game_path')
    if game_path:
        game = dataclasses.replace(game, extra_candidates=(str(game_path),) + tuple(game.extra_candidates))

    install_path = settings.get_setting('install_path')
    if install_path and addon.uses_release_feed:
        addon = dataclasses.replace(addon, install_path=Path(install_path).expanduser())

    return game, addon
