"""
Scheduling platform CSV templates.
Ordered header aliases per logical field for each supported export source.
"""

from typing import Dict, List, Optional

from config.constants import ALL_FIELDS, OTHER_PLATFORM


# Alias order matters: the column normalizer takes the first alias that matches
SCHEDULING_CSV_TEMPLATES: List[Dict] = [
    {
        "platform": "7shifts",
        "label": "7shifts",
        "columns": {
            "employee_id": ["employee id", "employee_id", "emp id"],
            "date": ["date", "shift date"],
            "first_name": ["first", "first name", "firstname"],
            "last_name": ["last", "last name", "lastname"],
            "in_time": ["in time", "in_time", "clock in", "start time", "start"],
            "out_time": ["out time", "out_time", "clock out", "end time", "end"],
            "role": ["role", "position", "job title"],
            "location": ["location", "site", "store"],
        },
        "time_format_notes": 'Times exported as 12-hour format with AM/PM (e.g., "10:00AM")',
    },
    {
        "platform": "hotschedules",
        "label": "HotSchedules (Fourth)",
        "columns": {
            "employee_id": ["emp #", "emp no", "employee #", "employee number", "employee id"],
            "date": ["shift date", "date", "work date"],
            "first_name": ["first name", "first", "firstname"],
            "last_name": ["last name", "last", "lastname"],
            "in_time": ["start", "start time", "in time", "clock in", "scheduled start"],
            "out_time": ["end", "end time", "out time", "clock out", "scheduled end"],
            "role": ["job", "job title", "role", "position"],
            "location": ["location", "store", "site"],
        },
    },
    {
        "platform": "whenIWork",
        "label": "When I Work",
        "columns": {
            "employee_id": ["user id", "employee id", "id"],
            "date": ["date", "shift date"],
            "first_name": ["first name", "first", "firstname"],
            "last_name": ["last name", "last", "lastname"],
            "in_time": ["clock in", "start time", "in time", "start"],
            "out_time": ["clock out", "end time", "out time", "end"],
            "role": ["position", "role", "job title"],
            "location": ["location", "site", "workplace"],
        },
    },
    {
        "platform": "deputy",
        "label": "Deputy",
        "columns": {
            "employee_id": ["employee", "employee id", "staff id"],
            "date": ["date", "shift date"],
            "first_name": ["first name", "given name", "first"],
            "last_name": ["last name", "surname", "last"],
            "in_time": ["start time", "start", "clock on", "in time"],
            "out_time": ["end time", "end", "clock off", "out time"],
            "role": ["area", "role", "position"],
            "location": ["location", "workplace"],
        },
    },
    {
        "platform": "homebase",
        "label": "Homebase",
        "columns": {
            "employee_id": ["employee id", "id", "emp id"],
            "date": ["date", "shift date", "day"],
            "first_name": ["first name", "first", "employee first"],
            "last_name": ["last name", "last", "employee last"],
            "in_time": ["clock in", "start", "in time", "start time"],
            "out_time": ["clock out", "end", "out time", "end time"],
            "role": ["role", "position", "job"],
            "location": ["location", "site"],
        },
    },
    {
        "platform": "sling",
        "label": "Sling",
        "columns": {
            "employee_id": ["employee id", "id", "user id"],
            "date": ["date", "shift date"],
            "first_name": ["first name", "first"],
            "last_name": ["last name", "last"],
            "in_time": ["start", "clock in", "in time", "start time"],
            "out_time": ["end", "clock out", "out time", "end time"],
            "role": ["position", "role"],
            "location": ["location", "site"],
        },
    },
    {
        "platform": "push",
        "label": "Push Operations",
        "columns": {
            "employee_id": ["employee id", "emp id", "id"],
            "date": ["date", "shift date"],
            "first_name": ["first name", "first"],
            "last_name": ["last name", "last"],
            "in_time": ["start time", "punch in", "clock in", "in time"],
            "out_time": ["end time", "punch out", "clock out", "out time"],
            "role": ["position", "role", "department"],
            "location": ["location", "restaurant"],
        },
    },
    {
        "platform": "restaurant365",
        "label": "Restaurant365",
        "columns": {
            "employee_id": ["employee id", "emp id", "employee number"],
            "date": ["date", "shift date", "work date"],
            "first_name": ["first name", "first"],
            "last_name": ["last name", "last"],
            "in_time": ["clock in", "in time", "start time", "start"],
            "out_time": ["clock out", "out time", "end time", "end"],
            "role": ["job title", "role", "position"],
            "location": ["location", "store", "unit"],
        },
    },
]

# Detection order for platform auto-detection; earlier platforms win ties
PLATFORM_IDS: List[str] = [template["platform"] for template in SCHEDULING_CSV_TEMPLATES]


def get_csv_template(platform: Optional[str]) -> Optional[Dict]:
    """
    Get the CSV template for a platform.

    Args:
        platform: Platform identifier (e.g. "7shifts"); None or "other" for unknown sources

    Returns:
        Template dictionary, or None when the platform has no known template
    """
    if platform is None or platform == OTHER_PLATFORM:
        return None

    for template in SCHEDULING_CSV_TEMPLATES:
        if template["platform"] == platform:
            return template

    return None


def build_mega_alias_map() -> Dict[str, List[str]]:
    """
    Build a deduplicated union of every platform's aliases per field.
    Used when the export source is unknown; alias order follows template order.
    """
    mega: Dict[str, List[str]] = {field: [] for field in ALL_FIELDS}

    for template in SCHEDULING_CSV_TEMPLATES:
        for field in ALL_FIELDS:
            for alias in template["columns"][field]:
                if alias not in mega[field]:
                    mega[field].append(alias)

    return mega
