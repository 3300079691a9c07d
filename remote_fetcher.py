"""
Remote Fetcher
Thin requests wrapper used for release feeds, digest manifests and downloads
"""

import requests

from addon_errors import FetchError

API_TIMEOUT = 30
DOWNLOAD_TIMEOUT = 120


class RemoteFetcher:
    def __init__(self, github_token=None, session=None):
        """Initialize fetcher.

        Args:
            github_token: Optional str - Token sent to api.github.com
            session: Optional requests.Session - Session to reuse
        """
        self.github_token = github_token
        self.session = session or requests.Session()

    def _headers(self, url):
        headers = {}
        if self.github_token and 'api.github.com' in url:
            headers['Authorization'] = f'token {self.github_token}'
        return headers

    def _get(self, url, timeout, **kwargs):
        try:
            response = self.session.get(url, headers=self._headers(url) or None, timeout=timeout, **kwargs)
        except requests.RequestException as e:
            raise FetchError(f'Request to {url} failed: {e}') from e

        if response.status_code == 403:
            try:
                message = response.json().get('message', '')
            except ValueError:
                message = ''
            if 'rate limit' in message.lower():
                response.close()
                raise FetchError('GitHub API rate limit exceeded')

        if response.status_code != 200:
            response.close()
            raise FetchError(f'Request to {url} returned HTTP {response.status_code}')
        return response

    def get_json(self, url):
        """Fetch and decode a JSON document.

        Args:
            url: str - Document URL

        Returns:
            object - Decoded JSON

        Raises:
            FetchError - On network failure, non-200 status or invalid JSON
        """
        response = self._get(url, API_TIMEOUT)
        try:
            return response.json()
        except ValueError as e:
            raise FetchError(f'Invalid JSON from {url}') from e

    def get_text(self, url):
        """Fetch a small text document such as a digest manifest."""
        return self._get(url, API_TIMEOUT).text

    def download(self, url, destination):
        """Stream a binary download to disk.

        Args:
            url: str - Direct download URL
            destination: Path - File to write

        Returns:
            Path - The written file
        """
        response = self._get(url, DOWNLOAD_TIMEOUT, stream=True)
        try:
            with open(destination, 'wb') as f:
                for chunk in response.iter_content(chunk_size=8192):
                    f.write(chunk)
        except requests.RequestException as e:
            raise FetchError(f'Download of {url} failed: {e}') from e
        finally:
            response.close()
        return destination
