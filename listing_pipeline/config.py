# listing_pipeline/config.py
from dotenv import load_dotenv
import csv
import os

load_dotenv()

# Input / output locations
SHARD_DIR = os.getenv("SHARD_DIR", "shards")
SHARD_GLOB = os.getenv("SHARD_GLOB", "*.csv")
SHARD_DELIMITER = os.getenv("SHARD_DELIMITER", ";")
QUERY_LIST = os.getenv("QUERY_LIST", "queries.csv")
QUERY_DELIMITER = os.getenv("QUERY_DELIMITER", ",")
OUTPUT_DIR = os.getenv("OUTPUT_DIR", "output")

# File names
FULL_EXPORT_NAME = "Sensus_Ekonomi_CLEAN.csv"
PUBLIC_EXPORT_NAME = "Sensus_Ekonomi_FINAL.csv"
DUPLICATES_REPORT_NAME = "duplicates_audit.csv"
VALIDATION_REPORT_NAME = "validation_audit.csv"
RESCRAPE_REPORT_NAME = "rescrape_tasks.csv"

# Export dialect of the census deliverables and reports
EXPORT_DIALECT = {"delimiter": ";", "quotechar": '"', "quoting": csv.QUOTE_ALL, "lineterminator": "\r\n"}

# Validation parameters
SIMILARITY_THRESHOLD = float(os.getenv("SIMILARITY_THRESHOLD", "0.7"))
SIMILARITY_METRIC = os.getenv("SIMILARITY_METRIC", "token_set_ratio")
POSITIVE_LABEL_TOKEN = os.getenv("POSITIVE_LABEL_TOKEN", "ditemukan")
TARGET_CITY = os.getenv("TARGET_CITY", "jakarta")
# "lat_min,lat_max,lon_min,lon_max", overrides TARGET_CITY when set
BOUNDING_BOX = os.getenv("BOUNDING_BOX")

# (lat_min, lat_max, lon_min, lon_max)
CITY_BOUNDING_BOXES = {
    "jakarta": (-6.3750, -6.0880, 106.6890, 106.9740),
    "surabaya": (-7.3510, -7.1850, 112.5980, 112.8470),
    "bandung": (-6.9700, -6.8370, 107.5460, 107.7400),
    "yogyakarta": (-7.8410, -7.7510, 110.3420, 110.4030),
    "medan": (3.4850, 3.8050, 98.5950, 98.7600),
    "makassar": (-5.2320, -5.0300, 119.3700, 119.5500),
}

# Runtime parameters
BATCH_SIZE = int(os.getenv("BATCH_SIZE", "8"))
MIN_SHARD_ROW_RATIO = float(os.getenv("MIN_SHARD_ROW_RATIO", "0.5"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Maximum retained lengths of typed string columns; None means unbounded text
FIELD_MAX_LENGTHS = {
    "idsbr": 64,
    "Query": 255,
    "Actual Place Name": 255,
    "Category": 100,
    "Address": None,
    "Phone Number": 32,
    "Website": 255,
    "Status": 50,
    "Open Status": 50,
    "Operation Hours": None,
    "Place": 150,
}
