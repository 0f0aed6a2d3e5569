"""Shared helpers for settings components."""

from pathlib import Path

from decouple import AutoConfig

# Project root: the directory holding the ``cloudbox`` package
BASE_DIR = Path(__file__).parent.parent.parent.parent

# Reads from os.environ first, then from config/.env if present
config = AutoConfig(search_path=BASE_DIR.joinpath('config'))
