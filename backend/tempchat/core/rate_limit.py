# tempchat/core/rate_limit.py

from slowapi import Limiter
from slowapi.util import get_remote_address

from tempchat.core.config import LOGIN_RATE_LIMIT, POST_RATE_LIMIT, RATE_LIMIT_ENABLED

# Initialize limiter (attached to app.state in main.py)
limiter = Limiter(key_func=get_remote_address, enabled=RATE_LIMIT_ENABLED)

# Rate limit constants
LOGIN_LIMIT = LOGIN_RATE_LIMIT
POST_MESSAGE_LIMIT = POST_RATE_LIMIT
