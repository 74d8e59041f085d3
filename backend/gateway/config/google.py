"""Google Cloud credential resolution shared by the cloud provider and speech services."""

import os
from typing import Optional


def ensure_google_credentials(credentials_path: Optional[str]) -> None:
    """Export GOOGLE_APPLICATION_CREDENTIALS when configured via settings.

    Container paths (``/app/...``) are remapped to the working directory when
    the gateway runs outside its image.
    """
    if not credentials_path or "GOOGLE_APPLICATION_CREDENTIALS" in os.environ:
        return

    creds_path = credentials_path
    if creds_path.startswith("/app/") and not os.path.exists(creds_path):
        possible_paths = [
            creds_path.replace("/app/", ""),
            os.path.join("gateway", "config", os.path.basename(creds_path)),
            os.path.join(os.getcwd(), "gateway", "config", os.path.basename(creds_path)),
        ]
        for path in possible_paths:
            if os.path.exists(path):
                creds_path = path
                break

    os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = creds_path
