# finflow/constants.py

# Upload hardening
MAX_UPLOAD_MB = 5
ALLOWED_EXTS = {".json"}
ALLOWED_MIME = {
    "application/json",
    "text/json",
    "text/plain",
    # Some browsers send this for .json; allow it but still require the extension:
    "application/octet-stream",
}

EXPORT_FILE_NAME = "finance-data.json"
EXPORT_CSV_NAME = "finance-data.csv"

# Remote document store (Google Sheets): <collection>__<document> worksheet
DEFAULT_COLLECTION = "financeData"
DEFAULT_DOCUMENT = "default"
DEFAULT_DATA_FILE = "finance-data.json"

# Flat table layout shared by the Sheets store and CSV export
FRAME_HEADERS = ["Kind", "CategoryId", "Id", "Label", "Amount", "Tier", "Allocated"]
KIND_INCOME = "income"
KIND_CATEGORY = "category"
KIND_SUB = "sub"

# Sankey palette
INCOME_COLORS = ["#FF6B6B", "#FFA07A", "#FFD700"]
TOTAL_INCOME_COLOR = "#003366"
CATEGORY_COLORS = ["#45B7D1", "#96CEB4", "#FFEEAD", "#D4A5A5", "#9B5DE5", "#F15BB5"]
TOTAL_INCOME_NODE = "total-income"

CURRENCY = "€"
