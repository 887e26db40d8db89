import os


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Comma separated list of origins allowed to open sockets / call the API
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', 'http://localhost:3000').split(',') if o.strip()]
    # Base used for invite links handed out on join
    PUBLIC_URL = os.environ.get('PUBLIC_URL', 'http://localhost:3000')
    PORT = int(os.environ.get('PORT', '3000'))
    # Rooms are strictly two-player
    MAX_PLAYERS_PER_ROOM = 2
    # Inactivity timeout for an active game (seconds)
    GAME_TIMEOUT_SEC = int(os.environ.get('GAME_TIMEOUT_SEC', '300'))
    # Stale empty room cleanup (seconds)
    STALE_ROOM_SWEEP_INTERVAL_SEC = int(os.environ.get('STALE_ROOM_SWEEP_INTERVAL_SEC', '1800'))
    STALE_ROOM_THRESHOLD_SEC = int(os.environ.get('STALE_ROOM_THRESHOLD_SEC', '1800'))
    # Input limits
    MAX_NAME_LENGTH = int(os.environ.get('MAX_NAME_LENGTH', '20'))
    MAX_ROOM_ID_LENGTH = int(os.environ.get('MAX_ROOM_ID_LENGTH', '10'))
    MAX_CHAT_LENGTH = int(os.environ.get('MAX_CHAT_LENGTH', '100'))
    DEFAULT_AVATAR_URL = os.environ.get('DEFAULT_AVATAR_URL', 'https://cdn-icons-png.flaticon.com/512/149/149071.png')
    AVATAR_CDN_URL = os.environ.get('AVATAR_CDN_URL', 'https://cdn.discordapp.com')
    # Per-client limit on the login routes (Flask-Limiter notation)
    AUTH_RATE_LIMIT = os.environ.get('AUTH_RATE_LIMIT', '10 per minute')
    # Callable(request) -> {externalId, displayName, avatarUrl} | None.
    # None selects the Discord-style query string provider.
    IDENTITY_PROVIDER = None
