DEFAULT_WINDOW = 16
DB_FILE_NAME = "patchvault.db"
ENV_PREFIX = "PATCHVAULT_"
