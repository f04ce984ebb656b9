"""Module entrypoint.

Allows:
    python -m container_log_stream
"""

from __future__ import annotations

from container_log_stream.server.log_server import main

if __name__ == "__main__":
    main()
