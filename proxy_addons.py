"""
Proxy Addons
Command-line entry points for the overlay and patch add-on managers
"""

__version__ = "1.0"

from pathlib import Path

import click

from addon_config import GAME, OVERLAY, PATCH, Channel, apply_settings
from addon_manager import AddonManager
from remote_fetcher import RemoteFetcher
from settings_store import SettingsStore

BASE_ACTIONS = ['Disable', 'Enable', 'Update']


def _warn(message):
    click.echo(message, err=True)


def _build_manager(addon, settings, install_path=None):
    """Wire settings, configuration and the network capability into a manager."""
    game, addon = apply_settings(GAME, addon, settings)
    fetcher = RemoteFetcher(github_token=settings.github_token())
    return AddonManager(addon, game, fetcher, log=click.echo, warn=_warn, install_path=install_path)


def _run_action(manager, action, channel):
    action = action.lower()
    if action == 'disable':
        return manager.disable()
    if action == 'enable':
        return manager.enable(channel)
    if action == 'troubleshoot':
        return manager.troubleshoot(channel)
    return manager.update(channel)


def _finish(result):
    if result['success']:
        click.echo(result['message'])
        return
    _warn(f"Error: {result['error']}")
    raise SystemExit(1)


settings_option = click.option(
    '--settings', 'settings_file',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='Settings file (default: $XDG_CONFIG_HOME/proxy-addons/settings.json).',
)


@click.command(name='overlay-manager')
@click.argument('action', required=False, default='Update',
                type=click.Choice(BASE_ACTIONS + ['Troubleshoot'], case_sensitive=False))
@click.option('--channel', type=click.Choice(['stable', 'next'], case_sensitive=False), default=None,
              help='Release channel (default: stable).')
@click.option('--install-path', type=click.Path(file_okay=False, path_type=Path), default=None,
              help=f'Where release archives are extracted (default: {OVERLAY.install_path}).')
@click.option('--remember', is_flag=True, help='Store --channel and --install-path in the settings file.')
@settings_option
@click.version_option(__version__)
def overlay_main(action, channel, install_path, remember, settings_file):
    """Disable, enable, update or troubleshoot the overlay add-on."""
    settings = SettingsStore(settings_file)
    if remember:
        if channel:
            settings.set_setting('channel', channel.lower())
        if install_path:
            settings.set_setting('install_path', str(install_path))

    try:
        selected = Channel.parse(channel or settings.get_setting('channel', 'stable'))
    except ValueError:
        raise click.UsageError(f"Invalid channel in settings: {settings.get_setting('channel')!r}")

    manager = _build_manager(OVERLAY, settings, install_path=install_path)
    _finish(_run_action(manager, action, selected))


@click.command(name='patch-manager')
@click.argument('action', required=False, default='Update',
                type=click.Choice(BASE_ACTIONS, case_sensitive=False))
@settings_option
@click.version_option(__version__)
def patch_main(action, settings_file):
    """Disable, enable or update the patch add-on."""
    settings = SettingsStore(settings_file)
    manager = _build_manager(PATCH, settings)
    _finish(_run_action(manager, action, Channel.STABLE))


if __name__ == '__main__':
    overlay_main()
