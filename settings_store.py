"""
Settings Store
Manages the proxy-addons settings.json file holding user overrides
"""

import json
import os
from pathlib import Path
from datetime import datetime


def default_settings_path():
    """Location of the settings file, honouring XDG_CONFIG_HOME."""
    config_home = os.environ.get('XDG_CONFIG_HOME') or Path.home() / '.config'
    return Path(config_home) / 'proxy-addons' / 'settings.json'


class SettingsStore:
    def __init__(self, settings_file=None):
        self.settings_file = Path(settings_file) if settings_file else default_settings_path()
        self.data = self._load_settings()

    def _load_settings(self):
        """Load settings from disk, falling back to an empty structure"""
        if self.settings_file.exists():
            try:
                with open(self.settings_file, 'r', encoding='utf-8') as f:
                    loaded = json.load(f)
            except (OSError, ValueError):
                return self._create_empty_structure()
            if isinstance(loaded, dict) and isinstance(loaded.get('settings'), dict):
                return loaded
        return self._create_empty_structure()

    def _create_empty_structure(self):
        """Create empty settings structure"""
        return {
            'version': '1.0',
            'last_updated': datetime.now().isoformat(),
            'settings': {}
        }

    def save_settings(self):
        """Save settings to settings.json"""
        self.data['last_updated'] = datetime.now().isoformat()
        try:
            self.settings_file.parent.mkdir(parents=True, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self.data, f, indent=2, ensure_ascii=False)
            return True
        except OSError as e:
            print(f"Error saving settings: {e}")
            return False

    def get_setting(self, key, default=None):
        """Get a setting value"""
        return self.data['settings'].get(key, default)

    def set_setting(self, key, value):
        """Set a setting value"""
        self.data['settings'][key] = value
        return self.save_settings()

    def github_token(self):
        """GitHub token from the settings file, else from GITHUB_TOKEN"""
        return self.get_setting('github_token') or os.environ.get('GITHUB_TOKEN')
