"""
Content Identifier
Content digests for installed files and detection of the other add-on
"""

import hashlib
from enum import Enum
from pathlib import Path

from addon_errors import FetchError


class ThirdPartyMatch(Enum):
    MATCH = 'match'
    MISMATCH = 'mismatch'
    UNKNOWN = 'unknown'

    @property
    def is_third_party(self):
        # UNKNOWN falls back to "not third party"
        return self is ThirdPartyMatch.MATCH


def parse_digest_manifest(text):
    """Return the first whitespace-delimited token of a manifest, lowercased.

    Args:
        text: str - Manifest body, e.g. "<hex>  dinput8.dll"

    Returns:
        str - Digest or None if the manifest is empty
    """
    tokens = (text or '').split()
    if not tokens:
        return None
    return tokens[0].lower()


class ContentIdentifier:
    def __init__(self, addon_config, fetcher, warn=print):
        """Initialize identifier.

        Args:
            addon_config: AddonConfig - Add-on being managed
            fetcher: RemoteFetcher - Used for the third-party reference digest
            warn: callable - Receives non-fatal warnings
        """
        self.addon_config = addon_config
        self.fetcher = fetcher
        self.warn = warn
        self._reference_digest = None
        self._reference_fetched = False

    def digest(self, path):
        """Hash a file's bytes.

        Args:
            path: str/Path - File to hash

        Returns:
            str - Lowercase hex digest, or None if the file does not exist
        """
        path = Path(path)
        if not path.is_file():
            return None
        hasher = hashlib.new(self.addon_config.hash_algorithm)
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(65536), b''):
                hasher.update(chunk)
        return hasher.hexdigest()

    def matches(self, path, expected_digest):
        """Check whether a file holds the content described by a digest."""
        actual = self.digest(path)
        if actual is None or not expected_digest:
            return False
        return actual == expected_digest.lower()

    def _third_party_reference(self):
        if self._reference_fetched:
            return self._reference_digest
        self._reference_fetched = True

        url = self.addon_config.third_party_digest_url
        name = self.addon_config.third_party_name or 'third-party add-on'
        try:
            digest = parse_digest_manifest(self.fetcher.get_text(url))
        except FetchError as e:
            self.warn(f'Warning: could not fetch the {name} digest ({e}); assuming it is not installed')
            return None
        if digest is None:
            self.warn(f'Warning: the {name} digest manifest is empty; assuming it is not installed')
        self._reference_digest = digest
        return digest

    def classify(self, path):
        """Decide whether a file is the other add-on.

        Args:
            path: str/Path - Installed file to classify

        Returns:
            ThirdPartyMatch - MATCH, MISMATCH, or UNKNOWN when no reference
            digest could be obtained
        """
        local = self.digest(path)
        if local is None:
            return ThirdPartyMatch.MISMATCH
        if not self.addon_config.third_party_digest_url:
            return ThirdPartyMatch.UNKNOWN

        reference = self._third_party_reference()
        if reference is None:
            return ThirdPartyMatch.UNKNOWN
        return ThirdPartyMatch.MATCH if local == reference else ThirdPartyMatch.MISMATCH

    def is_third_party_addon(self, path):
        return self.classify(path).is_third_party
