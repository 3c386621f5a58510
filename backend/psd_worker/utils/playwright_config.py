"""
Playwright configuration for containerized environments.

The worker runs Photopea inside Chromium on hosts such as:
- Docker containers
- Railway / Render style PaaS runtimes
- Other Kubernetes environments
"""

import os
from typing import Any, Dict, List, Optional

from psd_worker.config import HEADLESS

# Photopea sniffs for automation, so the UA matches a regular desktop Chrome.
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/140.0.0.0 Safari/537.36"
)

# Runs before any page script in every new document of the context.
STEALTH_INIT_SCRIPT = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
"""


def get_browser_args() -> List[str]:
    """
    Get browser arguments optimized for container environments.

    Returns:
        List of chromium arguments
    """
    args = [
        "--disable-gpu",
        "--no-sandbox",
        "--disable-dev-shm-usage",
        "--disable-setuid-sandbox",
        "--disable-software-rasterizer",
        "--disable-blink-features=AutomationControlled",
        "--no-first-run",
        "--no-zygote",
    ]

    # Add proxy settings if configured
    http_proxy = os.getenv("HTTP_PROXY") or os.getenv("http_proxy")
    if http_proxy:
        args.append(f"--proxy-server={http_proxy}")

    return args


def get_browser_launch_config(headless: bool = HEADLESS) -> Dict[str, Any]:
    """
    Get complete browser launch configuration.

    Args:
        headless: Whether to run in headless mode

    Returns:
        Dictionary with browser launch options
    """
    config = {
        "headless": headless,
        "args": get_browser_args(),
        "timeout": 60000,
    }

    executable_path = os.getenv("PLAYWRIGHT_CHROMIUM_EXECUTABLE_PATH")
    if executable_path and os.path.exists(executable_path):
        config["executable_path"] = executable_path

    if is_containerized():
        # Cold starts in small containers are slow
        config["timeout"] = 120000

    return config


def get_context_config() -> Dict[str, Any]:
    """
    Get browser context configuration.

    Returns:
        Dictionary with context options
    """
    return {
        "viewport": {"width": 1920, "height": 1080},
        "bypass_csp": True,
        "ignore_https_errors": True,
        "locale": "en-US",
        "user_agent": DEFAULT_USER_AGENT,
    }


def is_containerized() -> bool:
    """
    Detect if running in a containerized environment.

    Returns:
        True if running in container, False otherwise
    """
    if os.path.exists("/.dockerenv"):
        return True

    try:
        with open("/proc/1/cgroup", "r") as f:
            content = f.read()
            if "docker" in content or "kubepods" in content:
                return True
    except (FileNotFoundError, PermissionError):
        pass

    if os.getenv("KUBERNETES_SERVICE_HOST") or os.getenv("RAILWAY_ENVIRONMENT"):
        return True

    return False


def get_ws_endpoint() -> Optional[str]:
    """
    Get the CDP endpoint of an external browser service (browserless.io or similar).

    Returns:
        Endpoint URL or None if not configured
    """
    return os.getenv("PLAYWRIGHT_WS_ENDPOINT") or None
