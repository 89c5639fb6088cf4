"""Built-in defaults and fixed names used across WingetUpgrader."""

from datetime import timedelta

WINGET_CLIENT_MODULE = "Microsoft.WinGet.Client"
DESKTOP_APP_INSTALLER_GLOB = "Microsoft.DesktopAppInstaller_*_x64__8wekyb3d8bbwe"

QUERY_SCRIPT_NAME = "winget-query.ps1"
RESULT_FILE_NAME = "winget-upgrades.json"

TASK_FOLDER = "\\WingetUpgrader\\"
CLEANUP_TASK_NAME = "Remove Winget Upgrade Detection Marker"
QUERY_TASK_PREFIX = "Query Winget Upgrades As User"
CLEANUP_DELAY = timedelta(minutes=5)

SYSTEM_SID = "S-1-5-18"
USERS_GROUP_SID = "S-1-5-32-545"

# Task Scheduler: SCHED_S_TASK_HAS_NOT_RUN
TASK_HAS_NOT_RUN = 0x41303

DEPLOY_MODES = ("Interactive", "NonInteractive", "Silent")

DEFAULT_CONFIG = {
    "session": {
        "app_vendor": "Microsoft",
        "app_name": "Winget Upgrade",
        "app_version": "1.0.0",
        "deploy_mode": "Interactive",
        "show_notifications": True,
    },
    "detection_marker": "C:\\ProgramData\\WingetUpgrader\\WingetUpgrade.tag",
    "acceptable_exit_codes": [0, -1978335226, -1979189490],
    "skip_list": [],
    "upgrade_arguments": "--silent --accept-package-agreements --accept-source-agreements",
    "ui": {
        "title": "Available application updates",
        "width": 110,
        "name_width": 40,
    },
    "query_timeout_seconds": 900,
    "upgrade_timeout_seconds": 3600,
    "winget_path": None,
    "log_file": None,
}
