"""Actionable error catalog for WingetUpgrader."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "handoff_launch_failed": {
        "what": "Could not run the package query in the user session: {detail}",
        "next": "Make sure a user is logged on and Task Scheduler is available, or use `--direct-query`.",
    },
    "handoff_missing": {
        "what": "The user-session query finished without writing {path}.",
        "next": "Run the query script manually as the logged-on user and check the WinGet client module.",
    },
    "handoff_malformed": {
        "what": "The query result at {path} could not be parsed: {detail}",
        "next": "Inspect the retained result file; it is kept until the next run.",
    },
    "dependency_install_failed": {
        "what": "The {module} PowerShell module is missing and could not be installed.",
        "next": "Install it with `Install-Module {module} -Scope AllUsers` and retry.",
    },
    "package_upgrade_failed": {
        "what": "Upgrade of {package_id} failed with exit code {exit_code}.",
        "next": "Check the log file, or add the code to `acceptable_exit_codes` if it is benign.",
    },
    "marker_create_failed": {
        "what": "Could not create the detection marker {path}: {detail}",
        "next": "Check permissions on the marker directory; upgrades were already applied.",
    },
    "cleanup_schedule_failed": {
        "what": "Could not schedule removal of the detection marker: {detail}",
        "next": "The marker will remain until removed manually or by the next run.",
    },
}


def actionable_error(code: str, **kwargs: str) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
