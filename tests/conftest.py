import dataclasses
import hashlib
import io
import zipfile

import pytest

from addon_config import OVERLAY, PATCH, PATCH_DIGEST_URL, GameConfig
from addon_errors import FetchError

OVERLAY_BYTES = b'overlay payload v1.0'
PATCH_BYTES = b'patch payload build 7'
COMPANION_BYTES = b'd3dcompiler companion'
ARCHIVE_URL = 'https://downloads.example.test/overlay-v1.0.zip'


def sha256(data):
    return hashlib.sha256(data).hexdigest()


def make_zip(entries):
    """Build zip archive bytes from a {name: bytes} mapping."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w') as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def overlay_archive(payload=OVERLAY_BYTES):
    return make_zip({
        'Overlay/OverlayLauncher.exe': b'MZ launcher',
        'Overlay/bin/dinput8.dll': payload,
        'Overlay/d3dcompiler_47.dll': COMPANION_BYTES,
    })


def release(tag, published_at, assets, prerelease=False):
    return {
        'tag_name': tag,
        'prerelease': prerelease,
        'published_at': published_at,
        'assets': [{'name': name, 'browser_download_url': url} for name, url in assets],
    }


class FakeFetcher:
    """In-memory stand-in for RemoteFetcher.

    Serves canned JSON, text and downloads per URL; any other URL, or a
    URL listed in `failing`, raises FetchError. Every call is recorded.
    """

    def __init__(self, json_docs=None, texts=None, files=None, failing=()):
        self.json_docs = dict(json_docs or {})
        self.texts = dict(texts or {})
        self.files = dict(files or {})
        self.failing = set(failing)
        self.calls = []

    def _check(self, kind, url, table):
        self.calls.append((kind, url))
        if url in self.failing or url not in table:
            raise FetchError(f'Request to {url} failed')
        return table[url]

    def get_json(self, url):
        return self._check('json', url, self.json_docs)

    def get_text(self, url):
        return self._check('text', url, self.texts)

    def download(self, url, destination):
        destination.write_bytes(self._check('download', url, self.files))
        return destination

    def downloads(self):
        return [url for kind, url in self.calls if kind == 'download']


@pytest.fixture
def game_dir(tmp_path):
    path = tmp_path / 'game'
    path.mkdir()
    return path


@pytest.fixture
def game_config(game_dir):
    return GameConfig(folder='Game', library_roots=(), extra_candidates=(str(game_dir),))


@pytest.fixture
def install_dir(tmp_path):
    return tmp_path / 'install'


@pytest.fixture
def temp_root(tmp_path):
    path = tmp_path / 'tmp'
    path.mkdir()
    return path


@pytest.fixture
def overlay_config(install_dir):
    return dataclasses.replace(OVERLAY, install_path=install_dir)


@pytest.fixture
def patch_config():
    return PATCH


@pytest.fixture
def overlay_fetcher():
    """Feed with one stable archive release and the patch digest published."""
    return FakeFetcher(
        json_docs={OVERLAY.feed_url: [
            release('v1.0', '2024-05-01T10:00:00Z', [('overlay-v1.0.zip', ARCHIVE_URL)]),
        ]},
        texts={PATCH_DIGEST_URL: f'{sha256(PATCH_BYTES)}  dinput8.dll\n'},
        files={ARCHIVE_URL: overlay_archive()},
    )


@pytest.fixture
def patch_fetcher():
    return FakeFetcher(
        texts={PATCH_DIGEST_URL: f'{sha256(PATCH_BYTES)}  dinput8.dll\n'},
        files={PATCH.download_url: PATCH_BYTES},
    )
