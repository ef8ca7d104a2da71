"""
Launcher scripts for pages whose data lives in companion files.

Browsers refuse to fetch local files from a page opened via ``file://``
unless started with file-access flags. Each external-format project folder
therefore gets ``open.sh`` (Linux/macOS), ``open.bat`` (Windows) and a
``README.md`` explaining why.
"""

import logging
from pathlib import Path

from jinja2 import Environment

logger = logging.getLogger(__name__)

CHROMIUM_FLAGS = "--allow-file-access-from-files --disable-web-security"


# =============================================================================
# TEMPLATES
# =============================================================================

_SH_TEMPLATE = """#!/bin/bash
# Opens {{ html_filename }} in a browser allowed to read the local data/ folder.
# Tries Brave, Chrome, Chromium, Firefox, then the system default.

SCRIPT_DIR="$( cd "$( dirname "${BASH_SOURCE[0]}" )" && pwd )"
HTML_FILE="$SCRIPT_DIR/{{ html_filename }}"
TEMP_USER_DIR="$(mktemp -d)"

{% for browser in chromium_browsers %}
if command -v {{ browser }} &> /dev/null; then
    echo "Opening with {{ browser }}..."
    {{ browser }} {{ flags }} --user-data-dir="$TEMP_USER_DIR" "$HTML_FILE" &
    exit 0
fi
{% endfor %}

if command -v firefox &> /dev/null; then
    echo "Opening with firefox..."
    firefox "$HTML_FILE" &
    exit 0
fi

echo "Opening with default browser..."
if command -v xdg-open &> /dev/null; then
    xdg-open "$HTML_FILE" &
elif command -v open &> /dev/null; then
    open "$HTML_FILE" &
else
    echo "Could not find a suitable browser. Please open $HTML_FILE manually."
    exit 1
fi
"""

_BAT_TEMPLATE = """@echo off
REM Opens {{ html_filename }} in a browser allowed to read the local data\\ folder.
REM Tries Brave, Chrome, Firefox, then the system default.

set "HTML_FILE=%~dp0{{ html_filename }}"

{% for exe in path_browsers %}
where {{ exe }} >nul 2>&1
if %ERRORLEVEL% EQU 0 (
    echo Opening with {{ exe }}...
    start {{ exe }} --allow-file-access-from-files "%HTML_FILE%"
    exit /b
)

{% endfor %}
{% for location in chrome_locations %}
if exist "{{ location }}" (
    echo Opening with Google Chrome...
    start "" "{{ location }}" --allow-file-access-from-files "%HTML_FILE%"
    exit /b
)

{% endfor %}
where firefox.exe >nul 2>&1
if %ERRORLEVEL% EQU 0 (
    echo Opening with Firefox...
    start firefox.exe "%HTML_FILE%"
    exit /b
)

echo Opening with default browser...
start "" "%HTML_FILE%"
"""

_README_TEMPLATE = """# {{ html_filename }}

This folder holds an HTML page and the `data/` files it loads.

## Viewing

Browsers block pages opened from disk from reading other local files, so
opening `{{ html_filename }}` directly may show empty charts. Use a launcher,
which starts a browser with local file access enabled:

- Linux / macOS: `./open.sh`
- Windows: double-click `open.bat`

Alternatively serve the folder over HTTP, e.g. `python -m http.server`, and
browse to `http://localhost:8000/{{ html_filename }}`.

If neither is possible, rebuild the page with the `embedded` data format; the
data is then stored inside the HTML file itself.
"""

_CHROMIUM_BROWSERS = (
    "brave-browser",
    "brave",
    "google-chrome",
    "chrome",
    "chromium-browser",
    "chromium",
)
_PATH_BROWSERS = ("brave.exe", "chrome.exe")
_CHROME_LOCATIONS = (
    r"C:\Program Files\Google\Chrome\Application\chrome.exe",
    r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
)

# Shell scripts must not be HTML-escaped
_env = Environment(autoescape=False, trim_blocks=True, lstrip_blocks=True, keep_trailing_newline=True)


# =============================================================================
# RENDERING
# =============================================================================


def render_sh_launcher(html_filename: str) -> str:
    return _env.from_string(_SH_TEMPLATE).render(
        html_filename=html_filename,
        chromium_browsers=_CHROMIUM_BROWSERS,
        flags=CHROMIUM_FLAGS,
    )


def render_bat_launcher(html_filename: str) -> str:
    text = _env.from_string(_BAT_TEMPLATE).render(
        html_filename=html_filename,
        path_browsers=_PATH_BROWSERS,
        chrome_locations=_CHROME_LOCATIONS,
    )
    return text.replace("\n", "\r\n")


def render_readme(html_filename: str) -> str:
    return _env.from_string(_README_TEMPLATE).render(html_filename=html_filename)


def write_launchers(project_dir: Path | str, html_filename: str) -> list[Path]:
    """Write ``open.sh``, ``open.bat`` and ``README.md`` into ``project_dir``.

    Args:
        project_dir: Folder containing the HTML file and its data/ folder
        html_filename: Name of the HTML file the launchers open

    Returns:
        Paths of the written files
    """
    project_dir = Path(project_dir)
    project_dir.mkdir(parents=True, exist_ok=True)

    sh_path = project_dir / "open.sh"
    bat_path = project_dir / "open.bat"
    readme_path = project_dir / "README.md"

    sh_path.write_text(render_sh_launcher(html_filename), encoding="utf-8", newline="\n")
    sh_path.chmod(0o755)
    bat_path.write_bytes(render_bat_launcher(html_filename).encode("utf-8"))
    readme_path.write_text(render_readme(html_filename), encoding="utf-8")

    logger.info(f"Launcher scripts written to {project_dir}")
    return [sh_path, bat_path, readme_path]
