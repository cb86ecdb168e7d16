"""Print the OpenAPI schema of the notification service as JSON."""

import json

from projectpush.main import app

if __name__ == "__main__":
    print(json.dumps(app.openapi()))
