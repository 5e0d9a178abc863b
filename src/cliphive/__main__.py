import argparse
import logging
import sys
import time
from pathlib import Path

from cliphive.config import CACHE_DIR, LOG_PATH, POLL_INTERVAL, load_settings
from cliphive.storage import StorageManager
from cliphive.utils import ensure_dir
from cliphive.workspaces import WorkspaceManager

logger = logging.getLogger(__name__)


def setup_logging(cache_dir: Path) -> None:
    ensure_dir(cache_dir)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(cache_dir / LOG_PATH.name),
            logging.StreamHandler(sys.stderr),
        ],
    )


def list_workspaces(cache_dir: Path) -> int:
    """Print the configured workspaces, marking the active one."""
    manager = WorkspaceManager(StorageManager(cache_dir))
    for name in manager.workspaces:
        marker = "*" if name == manager.active else " "
        print(f"{marker} {name}")
    return 0


def run_app(cache_dir: Path) -> int:
    """Capture clipboard changes into the active workspace until interrupted."""
    setup_logging(cache_dir)

    from cliphive.capture import CaptureOrchestrator
    from cliphive.history import HistoryEngine
    from cliphive.pasteboard import PasteboardClipboard

    storage = StorageManager(cache_dir)
    workspaces = WorkspaceManager(storage)
    clipboard = PasteboardClipboard()
    engine = HistoryEngine(storage, workspaces, load_settings(), clipboard=clipboard, notify=logger.warning)
    engine.load()
    CaptureOrchestrator(clipboard, engine).start()
    logger.info("Capturing clipboard into workspace %s", engine.workspace)

    try:
        while True:
            clipboard.poll()
            time.sleep(POLL_INTERVAL)
    except KeyboardInterrupt:
        logger.info("Stopping clipboard capture")
        engine.flush()
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="cliphive - clipboard history with workspaces",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  (none)      Capture clipboard changes in the foreground
  workspaces  List workspaces (the active one is marked with *)
""",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["workspaces"],
        help="Command to run",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=CACHE_DIR,
        help=f"Directory holding workspace data (default: {CACHE_DIR})",
    )

    args = parser.parse_args()

    if args.command == "workspaces":
        sys.exit(list_workspaces(args.cache_dir))
    else:
        sys.exit(run_app(args.cache_dir))


if __name__ == "__main__":
    main()
