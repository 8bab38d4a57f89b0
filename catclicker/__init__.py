"""Cat Clicker: idle clicker game server (FastAPI + Redis) with a browser UI."""
