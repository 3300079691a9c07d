"""
Release Resolver
Picks the newest release artifact for a channel and reads digest manifests
"""

from dataclasses import dataclass

from addon_config import Channel
from addon_errors import FetchError, ReleaseError
from archive_tools import is_archive
from content_identifier import parse_digest_manifest

PREVIEW_MARKER = 'next'


@dataclass(frozen=True)
class ArtifactDescriptor:
    channel: Channel
    tag: str
    url: str
    name: str
    is_archive: bool


def release_channel(release):
    """Classify a feed entry as stable or preview.

    Args:
        release: dict - Release entry from the feed

    Returns:
        Channel - PREVIEW if flagged prerelease or tagged with the marker
    """
    tag = (release.get('tag_name') or '').lower()
    if release.get('prerelease') or PREVIEW_MARKER in tag:
        return Channel.PREVIEW
    return Channel.STABLE


class ReleaseResolver:
    def __init__(self, addon_config, fetcher):
        self.addon_config = addon_config
        self.fetcher = fetcher

    def _select_asset(self, release):
        assets = [a for a in release.get('assets') or [] if isinstance(a, dict)]
        wanted = self.addon_config.primary_name.lower()
        for asset in assets:
            if (asset.get('name') or '').lower() == wanted:
                return asset, False
        for asset in assets:
            if is_archive(asset.get('name')):
                return asset, True
        return None, False

    def latest_release(self, channel):
        """Resolve the newest artifact published on a channel.

        Args:
            channel: Channel - STABLE or PREVIEW

        Returns:
            ArtifactDescriptor - Newest artifact for the channel

        Raises:
            ReleaseError - If the feed cannot be read, no release matches the
            channel, or the chosen release has neither the bare library nor
            an archive asset
        """
        try:
            releases = self.fetcher.get_json(self.addon_config.feed_url)
        except FetchError as e:
            raise ReleaseError(f'Could not read the {self.addon_config.display_name} release feed: {e}') from e

        if not isinstance(releases, list):
            raise ReleaseError('Release feed did not return a list of releases')

        candidates = [r for r in releases if isinstance(r, dict) and release_channel(r) is channel]
        if not candidates:
            raise ReleaseError(f'No {channel.value} release of {self.addon_config.display_name} found')

        # ISO-8601 timestamps from the feed sort lexically
        candidates.sort(key=lambda r: r.get('published_at') or '', reverse=True)
        release = candidates[0]

        asset, archive = self._select_asset(release)
        if asset is None:
            raise ReleaseError(
                f'Release {release.get("tag_name")} has no {self.addon_config.primary_name} or archive asset'
            )

        return ArtifactDescriptor(
            channel=channel,
            tag=release.get('tag_name') or 'unknown',
            url=asset.get('browser_download_url'),
            name=asset.get('name'),
            is_archive=archive,
        )

    def latest_digest(self, channel=Channel.STABLE):
        """Read the published digest of the newest single-file build.

        Args:
            channel: Channel - Channel whose manifest to read

        Returns:
            str - Lowercase hex digest

        Raises:
            FetchError - If the manifest cannot be fetched
            ReleaseError - If no manifest exists for the channel or it is empty
        """
        url = self.addon_config.digest_manifest_urls.get(channel)
        if not url:
            raise ReleaseError(f'{self.addon_config.display_name} has no {channel.value} digest manifest')

        digest = parse_digest_manifest(self.fetcher.get_text(url))
        if digest is None:
            raise ReleaseError(f'Digest manifest at {url} is empty')
        return digest
