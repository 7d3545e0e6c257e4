"""
Vercel entry point for the Helpdesk Agent API
"""
import os
import sys

# Add parent directory to path
parent_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if parent_dir not in sys.path:
    sys.path.insert(0, parent_dir)

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")

from mangum import Mangum  # noqa: E402

from helpdesk_agent.main import app  # noqa: E402

# Lambda handler for ASGI app; lifespan runs on cold start
handler = Mangum(app, lifespan="auto")
