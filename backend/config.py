import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("PK_DATA_DIR", Path(__file__).parent / "data"))
REFERENCE_DATASET = Path(os.environ.get("PK_REFERENCE_DATASET", DATA_DIR / "theoph.csv"))

# dm.csv is read from the working directory; a missing file is fatal
DM_CSV_PATH = Path(os.environ.get("PK_DM_CSV", "dm.csv"))
# Example demographics shipped with the package, only read when passed explicitly
BUNDLED_DM_CSV = DATA_DIR / "dm.csv"

AGE_OVERRIDES_PATH = Path(os.environ.get("PK_AGE_OVERRIDES", DATA_DIR / "age_overrides.yaml"))
OUTPUT_DIR = Path(os.environ.get("PK_OUTPUT_DIR", Path(__file__).parent / "generated"))

CI_ALPHA = float(os.environ.get("PK_CI_ALPHA", "0.05"))

# Ages above this, read literally as years, need an explicit override entry
MAX_PLAUSIBLE_AGE_YEARS = 120.0

# Covariates shown in the per-sex boxplots (column -> axis label)
COVARIATES = {
    "weight": "Weight (kg)",
    "dose": "Dose (mg/kg)",
    "age": "Age (years)",
    "time": "Time since dose (h)",
}
