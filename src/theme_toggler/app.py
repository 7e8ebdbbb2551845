"""
Theme Toggler - desktop entrypoint
==================================

Opens a small Tk window with the theme toggler mounted in it.

    python -m theme_toggler [--config theme_toggler.yaml] [--locale cs]
"""

# ============================================================================
# IMPORTS
# ============================================================================

import argparse
import logging
import tkinter as tk
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from . import __version__
from .config_loader import ConfigLoader
from .controller import ThemeController
from .error_handling import ConfigurationError
from .locale_resolver import SystemLocaleEnvironment
from .system_preference import SystemPreference
from .tk_binding import TkPreferencePoller, TkThemeBinding

logger = logging.getLogger("theme_toggler.app")

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


# ============================================================================
# LOGGING
# ============================================================================

def configure_logging(
    level: int = logging.INFO,
    log_path: Optional[Path] = None,
    *,
    max_bytes: int = 5 * 1024 * 1024,   # 5 MB per file
    backup_count: int = 5,              # keep last 5 files
):
    """Console logging, plus a rotating log file when *log_path* is given"""
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)

    if log_path is not None:
        log_path = Path(log_path)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
        logging.getLogger("theme_toggler").addHandler(handler)


# ============================================================================
# CONFIGURATION
# ============================================================================

def load_options(config_path: Optional[str]) -> dict:
    """Options from --config, or from theme_toggler.{yaml,yml,json} in cwd / home"""
    if config_path:
        return ConfigLoader.load_options(Path(config_path))

    found = ConfigLoader.find_config_file([Path.cwd(), Path.home() / ".theme_toggler"])
    if found is None:
        return {}
    logger.info("Using config file: %s", found)
    return ConfigLoader.load_options(found)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="theme_toggler", description="Theme toggler demo window")
    parser.add_argument("--config", help="YAML or JSON options file")
    parser.add_argument("--locale", help="Switch to this locale after start")
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument("--poll-ms", type=int, default=2000, help="OS preference poll interval")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


# ============================================================================
# MAIN
# ============================================================================

def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(logging.DEBUG if args.debug else logging.INFO,
                      Path(args.log_file) if args.log_file else None)

    try:
        options = load_options(args.config)
    except ConfigurationError as e:
        logger.error("%s", e.message)
        return 2

    root = tk.Tk()
    root.title("Theme Toggler")
    root.geometry("360x200")

    preview = tk.Label(root, text="", font=("Segoe UI", 11))
    preview.pack(side="bottom", expand=True)

    binding = TkThemeBinding(
        root,
        on_effective_change=lambda effective: preview.config(text=f"Effective theme: {effective.value}"),
    )
    preference = SystemPreference()
    controller = ThemeController(
        binding=binding,
        preference=preference,
        environment=SystemLocaleEnvironment(document_language=args.locale),
    )
    controller.start(options)
    if args.locale:
        controller.set_locale(args.locale)

    poller = TkPreferencePoller(root, preference, interval_ms=args.poll_ms)
    poller.start()

    def on_closing():
        logger.info("Shutting down...")
        poller.stop()
        root.destroy()

    root.protocol("WM_DELETE_WINDOW", on_closing)

    logger.info("Starting UI...")
    root.mainloop()
    logger.info("Application stopped")
    return 0
