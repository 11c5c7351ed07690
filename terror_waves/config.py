# config.py
# Centralized configuration for the terror-waves report
# -------------------------------------------------------------------
# All paths are defined relative to the project root.
# Data files are in data/, outputs go to results/.
# -------------------------------------------------------------------

from pathlib import Path

# Project root (parent of the terror_waves/ package)
_THIS_FILE = Path(__file__).resolve()
PROJECT_ROOT = _THIS_FILE.parent.parent

# =====================================================================
# Input Data
# =====================================================================
DIR_DATA = PROJECT_ROOT / "data"
PATH_INCIDENTS = DIR_DATA / "incidents_geocoded.csv"

# =====================================================================
# Output Directories / Files
# =====================================================================
DIR_OUTPUT = PROJECT_ROOT / "results"
DIR_TABLES = DIR_OUTPUT / "tables"
DIR_POSTERIORS = DIR_OUTPUT / "posteriors"
PATH_REPORT = DIR_OUTPUT / "wave_report.md"
PATH_FIT_STATS = DIR_TABLES / "fit_statistics.csv"

# =====================================================================
# Input Columns
# =====================================================================
COL_REGION = "Region"
COL_X = "xcoord"
COL_Y = "ycoord"
COL_TRAVEL_TIME = "Travel_Time_Average"
COL_BORDER_DIST = "B_Dist_km"

# Log-transformed responses added by the transformer
COL_LOG_TRAVEL_TIME = "log_travel_time"
COL_LOG_BORDER_DIST = "log_border_dist"

# Region every analysis is restricted to
REGION = "Western Europe"

# Rapoport waves: display name -> boolean flag column
WAVES = {
    "Third Wave": "Third_Wave",
    "Fourth Wave": "Fourth_Wave",
}

# =====================================================================
# Stacked (long-format) table
# =====================================================================
GROUP_TRAVEL_TIME = "travel_time"
GROUP_BORDER_DIST = "border_distance"
GROUPS = (GROUP_TRAVEL_TIME, GROUP_BORDER_DIST)

COL_GROUP = "group"
COL_RESPONSE = "response"

# Group-masked covariate columns: term -> (group, source column)
TERMS = {
    "x_tt": (GROUP_TRAVEL_TIME, COL_X),
    "y_tt": (GROUP_TRAVEL_TIME, COL_Y),
    "x_bd": (GROUP_BORDER_DIST, COL_X),
    "y_bd": (GROUP_BORDER_DIST, COL_Y),
}

# Transformed response feeding each group
GROUP_RESPONSE = {
    GROUP_TRAVEL_TIME: COL_LOG_TRAVEL_TIME,
    GROUP_BORDER_DIST: COL_LOG_BORDER_DIST,
}

# =====================================================================
# Priors
# =====================================================================
# Group intercepts: iid random effect with fixed (not estimated) precision
GROUP_PRECISION = 0.001
# Slopes: vague Gaussian prior on the (standardized) covariate scale
BETA_PRECISION = 0.001
# Residual scale per likelihood
SIGMA_SD = 5.0
STANDARDIZE_COVARIATES = True

# =====================================================================
# Sampling
# =====================================================================
DRAWS = 2_000
TUNE = 1_000
CHAINS = 4
CORES = 4
TARGET_ACCEPT = 0.90
RANDOM_SEED = 61
NUTS_SAMPLER = "pymc"

# =====================================================================
# Reporting / Diagnostics
# =====================================================================
HDI_PROB = 0.95
RHAT_MAX = 1.05
ESS_MIN = 400
PARETO_K_BAD = 0.7


# =====================================================================
# Utility Functions
# =====================================================================
def ensure_dirs():
    """Create output directories if they don't exist."""
    dirs = [
        DIR_OUTPUT,
        DIR_TABLES,
        DIR_POSTERIORS,
    ]
    for d in dirs:
        d.mkdir(parents=True, exist_ok=True)


def posterior_path(wave: str, directory=None) -> Path:
    """NetCDF path for a wave's posterior, e.g. results/posteriors/third_wave.nc"""
    return Path(directory or DIR_POSTERIORS) / f"{slugify(wave)}.nc"


def coefficient_table_path(wave: str, directory=None) -> Path:
    return Path(directory or DIR_TABLES) / f"coefficients_{slugify(wave)}.csv"


def slugify(name: str) -> str:
    return "_".join(name.lower().split())
