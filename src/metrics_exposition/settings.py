import os

# Value of the "source" key in snapshot metadata
SOURCE = os.getenv("EXPOSITION_SOURCE", "metrics_exposition")

GIT_SHA = os.getenv("COMMIT_HASH", "unknown")
