# config.py
import os
from dotenv import load_dotenv

load_dotenv()

# AWS / SQS
AWS_REGION   = os.getenv("AWS_REGION", "us-east-1")
SQS_ENDPOINT = os.getenv("SQS_ENDPOINT")  # local emulator, e.g. http://localhost:9324

# Service limits (SQS hard caps, override for emulators with other bounds)
SQS_MAX_BATCH      = int(os.getenv("SQS_MAX_BATCH", "10"))         # messages per receive
SQS_MAX_VISIBILITY = int(os.getenv("SQS_MAX_VISIBILITY", "43200")) # secs
SQS_MAX_WAIT       = int(os.getenv("SQS_MAX_WAIT", "20"))          # secs of long polling

# Peek rounds
PEEK_MIN_ROUNDS         = int(os.getenv("PEEK_MIN_ROUNDS", "4"))
PEEK_MAX_ROUNDS         = int(os.getenv("PEEK_MAX_ROUNDS", "12"))
PEEK_EMPTY_ROUNDS       = int(os.getenv("PEEK_EMPTY_ROUNDS", "2"))        # rounds with nothing new before stopping
PEEK_ROUND_DELAY        = float(os.getenv("PEEK_ROUND_DELAY", "0.3"))     # secs between rounds
PEEK_VISIBILITY_TIMEOUT = int(os.getenv("PEEK_VISIBILITY_TIMEOUT", "1"))  # secs a peeked message stays hidden
PEEK_FIRST_WAIT         = int(os.getenv("PEEK_FIRST_WAIT", "2"))          # secs of long polling, round one
PEEK_WAIT               = int(os.getenv("PEEK_WAIT", "1"))                # secs of long polling, later rounds
PEEK_DEFAULT_MAX        = int(os.getenv("PEEK_DEFAULT_MAX", "10"))

# Refetch for deletion
REFETCH_ATTEMPTS           = int(os.getenv("REFETCH_ATTEMPTS", "5"))
REFETCH_VISIBILITY_TIMEOUT = int(os.getenv("REFETCH_VISIBILITY_TIMEOUT", "30"))  # secs to issue the delete
REFETCH_WAIT               = int(os.getenv("REFETCH_WAIT", "1"))
REFETCH_DELAY              = float(os.getenv("REFETCH_DELAY", "0.5"))            # secs between attempts

# Destructive "receive" mode
RECEIVE_VISIBILITY_TIMEOUT = int(os.getenv("RECEIVE_VISIBILITY_TIMEOUT", "30"))

# API
ADMIN_PORT = int(os.getenv("ADMIN_PORT", "5000"))
