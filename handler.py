"""AWS Lambda handler via Mangum.

Wraps the FastAPI app for API Gateway (v2 HTTP API) events.
The app and Mangum adapter are created at module level so they persist
across warm Lambda invocations.

Environment variables (recommended for Lambda):
    SESSION_BACKEND=dynamodb
    DYNAMODB_TABLE=aiguide_sessions
    SESSION_ID_SECRET=<random string>
    SESSION_IDLE_MS=3600000
"""

import logging

from mangum import Mangum

from aiguide.config import get_settings
from aiguide.main import create_app
from aiguide.store import DynamoDBDocumentStore

s = get_settings()

logging.basicConfig(
    level=s.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Choose document store based on config
document_store = None
if s.uses_dynamodb:
    document_store = DynamoDBDocumentStore(
        table_name=s.dynamodb_table,
        endpoint_url=s.dynamodb_endpoint,
        region_name=s.aws_region,
        timeout=s.store_timeout_seconds,
        max_attempts=s.store_max_attempts,
    )

app = create_app(document_store=document_store)

handler = Mangum(app, lifespan="auto")
