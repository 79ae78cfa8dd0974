"""Minimal demonstration of subscribing to Ask AI chips."""

import sys

from askai_core.api.service import create_service
from askai_core.config.settings import settings

if __name__ == "__main__":
    search_id = sys.argv[1] if len(sys.argv) > 1 else "demo-search"
    service = create_service(domain="flight")
    service.subscribe_to_events(
        search_id,
        settings.askai_auth_token,
        on_event=lambda event: print("Event:", event.text),
        on_error=lambda error: print("Error:", error.code, error.message),
        on_chips=lambda chips: print("Chips:", sorted(chips)),
    )
    try:
        for _ in service.session.events():
            pass
    except KeyboardInterrupt:
        pass
    finally:
        service.disconnect()
