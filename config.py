import socket
import os
from dotenv import load_dotenv

load_dotenv()

def get_local_ip():
    """
    Get the local IP address of the machine.
    This allows other devices on the same network to reach the API,
    which matters for the application links we hand out to candidates.
    """
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        local_ip = s.getsockname()[0]
        s.close()
        return local_ip
    except OSError:
        return "localhost"

# Server
API_HOST = os.getenv("API_HOST") or get_local_ip()
API_PORT = int(os.getenv("API_PORT", "8000"))
API_BASE_URL = f"http://{API_HOST}:{API_PORT}"

# Links that get emailed/copied to candidates
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", API_BASE_URL).rstrip("/")

# Storage
DATA_DIR = os.getenv("DATA_DIR", "data")
MAX_UPLOAD_SIZE_MB = int(os.getenv("MAX_UPLOAD_SIZE_MB", "10"))

# LLM
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
LLM_MODEL = os.getenv("LLM_MODEL", "llama-3.3-70b-versatile")
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "30"))

# Documentation alerts
EXPIRY_WARNING_DAYS = int(os.getenv("EXPIRY_WARNING_DAYS", "60"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
