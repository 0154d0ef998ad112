"""Global configuration constants for the project.

Defines paths, filenames and fixed domain values used across the
pipeline. Runtime tunables that operators may override live in
``src.pipeline.profiles.settings``.
"""

from __future__ import annotations

from pathlib import Path

# Project directories
PROJECT_ROOT: Path = Path(__file__).resolve().parents[1]
SRC_DIR: Path = PROJECT_ROOT / "src"
LOG_DIR: Path = PROJECT_ROOT / "logs"
DATA_DIR: Path = PROJECT_ROOT / "data"
TEMPLATES_DIR: Path = PROJECT_ROOT / "templates"

# Input dataset
DATASET_PATH: Path = DATA_DIR / "council-area-profiles-dataset.xlsx"
UPDATES_KEY: str = "updates"
UPDATES_SHEET_PREFIX: str = "updates_"
AREA_COLUMN: str = "Council Area"
NATIONAL_AREA_NAME: str = "Scotland"

# Sheets every dataset is expected to carry (validated before merge)
EXPECTED_SHEETS: tuple[str, ...] = (
    "Population",
    "Deprivation",
    "Health",
    "Economy",
    "Education",
    "Housing",
)

# Council areas a profile is produced for; order defines report ordering
COUNCIL_AREAS: tuple[str, ...] = (
    "Aberdeen City",
    "Aberdeenshire",
    "Angus",
    "Argyll and Bute",
    "City of Edinburgh",
    "Clackmannanshire",
    "Dumfries and Galloway",
    "Dundee City",
    "East Ayrshire",
    "East Dunbartonshire",
    "East Lothian",
    "East Renfrewshire",
    "Falkirk",
    "Fife",
    "Glasgow City",
    "Highland",
    "Inverclyde",
    "Midlothian",
    "Moray",
    "Na h-Eileanan Siar",
    "North Ayrshire",
    "North Lanarkshire",
    "Orkney Islands",
    "Perth and Kinross",
    "Renfrewshire",
    "Scottish Borders",
    "Shetland Islands",
    "South Ayrshire",
    "South Lanarkshire",
    "Stirling",
    "West Dunbartonshire",
    "West Lothian",
)

# Intermediate artifacts and rendered documents
TEMP_DIR: Path = PROJECT_ROOT / "temp"
OUTPUT_DIR: Path = PROJECT_ROOT / "output"
ARTIFACT_FILENAME_SUFFIX: str = "-content.pkl"
PROFILE_FILENAME_SUFFIX: str = "-council-profile.html"
PROFILE_TEMPLATE_PATH: Path = TEMPLATES_DIR / "council_profile_template.html"

# Worker pool
DEFAULT_WORKER_KIND: str = "process"
WORKER_KINDS: tuple[str, ...] = ("process", "thread")
DATASET_CONTEXT_NAME: str = "dataset"

# Logging
LOG_FILENAME_CREATE_PROFILES: str = "create_all_profiles.log"
LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Rendering fallbacks
MISSING_VALUE_TEXT: str = "Not available"
