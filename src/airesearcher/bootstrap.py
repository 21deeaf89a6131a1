import sys

from .api import get_service
from .core.installer import InstallationProgress
from .utils.logger import get_logger, shutdown_logging

logger = get_logger(__name__)


def print_progress(progress: InstallationProgress) -> None:
    print(f"[{progress.progress_percentage:3d}%] {progress.message}")


def run_first_install() -> bool:
    service = get_service()
    result = service.run_installation(progress_handler=print_progress)
    if not result.success:
        print(f"Installation failed: {result.error_message}")
        return False

    print(f"Installed to {result.config.data_directory}")
    for info in (result.claude_code_info, result.ollama_info, result.gemini_info):
        if info is None:
            continue
        status = f"found ({info.version or 'unknown version'})" if info.installed else "not installed"
        print(f"  {info.tool.display_name}: {status}")
        if not info.installed:
            command = service.get_quick_install_command(info.tool)
            if command:
                print(f"    Quick install: {command}")
    return True


def run_update() -> bool:
    result = get_service().run_update_process()
    print(result.message)
    for path in result.files_updated:
        print(f"  updated: {path}")
    if not result.success and result.backup_created:
        print(f"A backup of your data is available at {result.backup_path}")
    return result.success


def main():
    service = get_service()
    try:
        if service.config_exists():
            success = run_update()
        else:
            success = run_first_install()
    finally:
        shutdown_logging()

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
