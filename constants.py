import os

LINK_BASE_URL = os.getenv("LINK_BASE_URL", "https://vdo.ninja/")
LINK_ID_BITS = int(os.getenv("LINK_ID_BITS", 128))

LINK_DATA_DIR = os.path.expanduser(os.getenv("LINK_DATA_DIR", "~/.securelink"))
LINK_STORE_PATH = os.getenv("LINK_STORE_PATH", os.path.join(LINK_DATA_DIR, "link.json"))
LINK_KEY_PATH = os.getenv("LINK_KEY_PATH", os.path.join(LINK_DATA_DIR, "link.key"))

# Origins allowed to call the local API (the desktop webview and local dev pages)
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", "tauri://localhost,http://localhost,http://127.0.0.1").split(",")
    if origin.strip()
]

HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", 8000))
