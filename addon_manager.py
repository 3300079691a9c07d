"""
Addon Manager
Runs Disable, Enable, Update and Troubleshoot for one proxy-DLL add-on
"""

import os
import stat
import tempfile
from pathlib import Path

import requests

from addon_config import Channel
from addon_errors import AddonError, ArtifactNotFoundError, IntegrityError
from archive_tools import extract_all, find_member
from content_identifier import ThirdPartyMatch, ContentIdentifier
from game_locator import GameLocator
from install_state import (Outcome, Slot, SlotLayout, choose_update_target,
                           plan_disable, plan_enable, plan_update)
from plan_executor import PlanExecutor
from release_resolver import ReleaseResolver


class AddonManager:
    def __init__(self, addon_config, game_config, fetcher, log=print, warn=print, install_path=None, temp_root=None):
        """Initialize add-on manager.

        Args:
            addon_config: AddonConfig - Add-on to manage
            game_config: GameConfig - Game whose directory holds the slots
            fetcher: RemoteFetcher - Network capability
            log: callable - Receives status lines
            warn: callable - Receives warnings and errors
            install_path: Optional str/Path - Overrides the configured
                extraction directory for archive releases
            temp_root: Optional str/Path - Parent directory for downloads
        """
        self.addon = addon_config
        self.fetcher = fetcher
        self.log = log
        self.warn = warn
        self.temp_root = temp_root
        self.install_path = Path(install_path).expanduser() if install_path else addon_config.install_path

        self.locator = GameLocator(game_config)
        self.game_dir = self.locator.resolve()
        self.layout = SlotLayout.for_addon(self.game_dir, addon_config)
        self.identifier = ContentIdentifier(addon_config, fetcher, warn=warn)
        self.resolver = ReleaseResolver(addon_config, fetcher)
        self.executor = PlanExecutor(log=log)

    def _primary_match(self):
        return self.identifier.classify(self.layout.path(Slot.PRIMARY_ACTIVE))

    def _apply(self, plan):
        message = plan.message
        if plan.outcome is Outcome.PROTECTED:
            message = f'Warning: {message}'
        self.executor.execute(plan)
        return {'success': True, 'message': message, 'outcome': plan.outcome.value}

    def _run(self, operation, *args):
        try:
            return operation(*args)
        except (AddonError, requests.RequestException, OSError) as e:
            return {'success': False, 'error': str(e)}

    def disable(self):
        """Move the add-on to its disabled filename.

        Returns:
            dict - Result with keys:
            - success: bool - False only on fatal failure
            - message: str - Status message
            - outcome: str - 'changed', 'nothing_to_do' or 'protected'
            - error: str - Error message if failed
        """
        return self._run(self._disable)

    def _disable(self):
        self.locator.require(self.game_dir)
        plan = plan_disable(self.layout, self.layout.occupancy(), self._primary_match, self.addon.display_name)
        return self._apply(plan)

    def enable(self, channel=Channel.STABLE):
        """Restore the add-on from its disabled filename, installing it when
        no disabled copy exists.

        Args:
            channel: Channel - Channel used for a first-time install

        Returns:
            dict - Result with the same keys as disable()
        """
        return self._run(self._enable, channel)

    def _enable(self, channel):
        self.locator.require(self.game_dir)
        plan = plan_enable(
            self.layout,
            self.layout.occupancy(),
            self._primary_match,
            promote_to_chainload=self.addon.promote_on_enable,
            name=self.addon.display_name,
        )
        if plan.outcome is Outcome.NEEDS_UPDATE:
            self.log(plan.message)
            return self._update(channel)
        return self._apply(plan)

    def update(self, channel=Channel.STABLE):
        """Install or update the add-on from its remote source.

        Downloads live in a temporary directory that is removed on every
        exit path.

        Args:
            channel: Channel - Release channel to install from

        Returns:
            dict - Result with keys success, message, outcome
            ('changed' or 'up_to_date') or error
        """
        return self._run(self._update, channel)

    def _update(self, channel):
        self.locator.require(self.game_dir)
        with tempfile.TemporaryDirectory(prefix=f'proxy-addons-{self.addon.key}-', dir=self.temp_root) as temp_dir:
            if self.addon.uses_release_feed:
                plan = self._plan_release_update(channel, Path(temp_dir))
            else:
                plan = self._plan_single_file_update(channel, Path(temp_dir))
            return self._apply(plan)

    def _plan_release_update(self, channel, temp_path):
        artifact = self.resolver.latest_release(channel)
        self.log(f'Latest {channel.value} release of {self.addon.display_name}: {artifact.tag}')

        download = temp_path / Path(artifact.name).name
        self.log(f'Downloading {artifact.name}...')
        self.fetcher.download(artifact.url, download)

        archive = None
        payload = download
        if artifact.is_archive:
            archive = download
            payload = self._install_archive(download)

        occupancy = self.layout.occupancy()
        target = choose_update_target(self.layout, occupancy, self._primary_match)
        return plan_update(
            self.layout,
            occupancy,
            target,
            payload,
            self.identifier.digest(payload),
            self.identifier.digest(self.layout.path(target)),
            archive=archive,
            companions=self.addon.companion_files,
            name=self.addon.display_name,
        )

    def _install_archive(self, archive):
        """Extract a release archive into the install path.

        The launcher and payload are located from the archive's own entries,
        so files left behind by earlier releases are never picked up.

        Args:
            archive: Path - Downloaded archive

        Returns:
            Path - Payload library inside the extracted tree

        Raises:
            ArtifactNotFoundError - If the archive holds no payload library
        """
        if self.install_path is None:
            raise AddonError(f'{self.addon.display_name} has no install path configured')

        self.log(f'Extracting {archive.name} to {self.install_path}')
        extract_all(archive, self.install_path)

        if self.addon.launcher_name:
            member = find_member(archive, self.addon.launcher_name, self.addon.launcher_name)
            if member is not None:
                launcher = self.install_path / member
                launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
            else:
                self.warn(f'Warning: {self.addon.launcher_name} not found in {archive.name}')

        member = find_member(archive, self.addon.payload_subpath, self.addon.primary_name)
        if member is None:
            raise ArtifactNotFoundError(f'{self.addon.primary_name} not found in {archive.name}')
        self.log(f'Payload: {member}')
        return self.install_path / member

    @staticmethod
    def _find_file(root, subpath, filename):
        """Look up a file at a conventional subpath, else the newest copy in the tree."""
        if subpath:
            direct = root / subpath
            if direct.is_file():
                return direct
        wanted = filename.lower()
        found = [p for p in root.rglob('*') if p.is_file() and p.name.lower() == wanted]
        return max(found, key=lambda p: p.stat().st_mtime_ns, default=None)

    def _plan_single_file_update(self, channel, temp_path):
        expected = self.resolver.latest_digest(channel)
        occupancy = self.layout.occupancy()
        target = choose_update_target(self.layout, occupancy, self._primary_match)
        occupant = self.layout.path(target)

        if self.identifier.matches(occupant, expected):
            return plan_update(self.layout, occupancy, target, None, expected, expected,
                               name=self.addon.display_name)

        download = temp_path / self.addon.primary_name
        self.log(f'Downloading {self.addon.display_name}...')
        self.fetcher.download(self.addon.download_url, download)

        actual = self.identifier.digest(download)
        if actual != expected:
            download.unlink()
            raise IntegrityError(
                f'Downloaded {self.addon.primary_name} does not match the published digest '
                f'(expected {expected}, got {actual})'
            )

        return plan_update(
            self.layout,
            occupancy,
            target,
            download,
            actual,
            self.identifier.digest(occupant),
            backup=True,
            name=self.addon.display_name,
        )

    def troubleshoot(self, channel=Channel.STABLE):
        """Print a read-only report of the add-on's installation state.

        Returns:
            dict - Result with keys success, message, outcome ('report') or
            error when the game directory is missing
        """
        return self._run(self._troubleshoot, channel)

    def _troubleshoot(self, channel):
        self.log(f'Game directory: {self.game_dir}')
        self.locator.require(self.game_dir)

        occupancy = self.layout.occupancy()
        for slot, path in self.layout.paths.items():
            digest = self.identifier.digest(path)
            state = f'present  {self.addon.hash_algorithm}:{digest[:16]}' if digest else 'absent'
            self.log(f'  {slot.value:<19} {path.name:<28} {state}')

        match = None
        if Slot.PRIMARY_ACTIVE in occupancy:
            match = self._primary_match()
            primary_name = self.layout.path(Slot.PRIMARY_ACTIVE).name
            other = self.addon.third_party_name or 'another add-on'
            if match is ThirdPartyMatch.MATCH:
                self.log(f'{primary_name} is {other}')
            elif match is ThirdPartyMatch.MISMATCH:
                self.log(f'{primary_name} is not {other}')
            else:
                self.log(f'{primary_name} could not be identified')

        if len(occupancy.active) > 1 and match is not ThirdPartyMatch.MATCH:
            self.warn(f'Warning: both {self.addon.primary_name} and {self.addon.chainload_name} are populated; '
                      f'run Disable then Enable to clean up')
        for active, disabled in ((Slot.PRIMARY_ACTIVE, Slot.PRIMARY_DISABLED),
                                 (Slot.SECONDARY_ACTIVE, Slot.SECONDARY_DISABLED)):
            if active in occupancy and disabled in occupancy and not (active is Slot.PRIMARY_ACTIVE and match is ThirdPartyMatch.MATCH):
                self.warn(f'Warning: {self.layout.path(disabled).name} is stale next to {self.layout.path(active).name}')

        if self.install_path is not None:
            self._report_install_path(occupancy, match)

        try:
            if self.addon.uses_release_feed:
                artifact = self.resolver.latest_release(channel)
                self.log(f'Latest {channel.value} release: {artifact.tag} ({artifact.name})')
            else:
                self.log(f'Published digest: {self.resolver.latest_digest(channel)}')
        except AddonError as e:
            self.warn(f'Warning: could not check for releases: {e}')

        return {'success': True, 'message': 'Troubleshooting report complete', 'outcome': 'report'}

    def _report_install_path(self, occupancy, match):
        if not self.install_path.is_dir():
            self.log(f'Install path {self.install_path} does not exist; run Update')
            return
        self.log(f'Install path: {self.install_path}')

        if self.addon.launcher_name:
            launcher = self._find_file(self.install_path, self.addon.launcher_name, self.addon.launcher_name)
            if launcher is None:
                self.warn(f'Warning: {self.addon.launcher_name} is missing from the install path')
            elif not os.access(launcher, os.X_OK):
                self.warn(f'Warning: {launcher} is not executable; run Update to fix it')
            else:
                self.log(f'Launcher: {launcher}')

        payload = self._find_file(self.install_path, self.addon.payload_subpath, self.addon.primary_name)
        if payload is None:
            self.warn(f'Warning: {self.addon.primary_name} is missing from the install path')
            return

        target = choose_update_target(self.layout, occupancy, lambda: match or ThirdPartyMatch.MISMATCH)
        if self.identifier.digest(payload) == self.identifier.digest(self.layout.path(target)):
            self.log(f'{self.layout.path(target).name} matches the extracted release')
        else:
            self.warn(f'Warning: {self.layout.path(target).name} differs from the extracted release; run Update')
