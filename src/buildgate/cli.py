"""Shared CLI helpers."""

from __future__ import annotations

import argparse

EXIT_OK = 0
EXIT_BLOCK = 1
EXIT_INVALID_INPUT = 2
EXIT_MEASUREMENT_FAILED = 3


def base_parser(name: str, description: str) -> argparse.ArgumentParser:
    return argparse.ArgumentParser(prog=name, description=description)


def add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", default=None, help="Config file path")
