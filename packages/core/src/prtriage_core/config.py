import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_BOTS = ["coderabbitai", "github-actions", "sonarqubecloud"]

DEFAULT_CONFIG: dict = {
    "state_dir": "~/.cursor/reviews",
    "bots": list(DEFAULT_BOTS),  # authors whose comments are parsed as bot summaries
    "ignored_authors": DEFAULT_BOTS + ["dependabot"],  # never listed as user comments
    "concurrency": 3,
    "pause_seconds": 0.5,
    "max_body_length": 15000,
    "noise_rules": [],  # extra {name, pattern, replacement} sanitizer rules
}

_LIST_KEYS = ("bots", "ignored_authors", "noise_rules")


def load_config(config_path: str = ".prtriage.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prtriage.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, **{key: list(DEFAULT_CONFIG[key]) for key in _LIST_KEYS}}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config
