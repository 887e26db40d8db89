from flask import current_app


def discord_avatar_url(user_id, avatar_hash=None, discriminator=None, cdn=None):
    cdn = (cdn or 'https://cdn.discordapp.com').rstrip('/')
    if avatar_hash:
        return f"{cdn}/avatars/{user_id}/{avatar_hash}.png?size=64"
    try:
        index = int(discriminator or 0) % 5
    except (TypeError, ValueError):
        index = 0
    return f"{cdn}/embed/avatars/{index}.png"


def discord_query_identity(request):
    """Default identity provider.

    The OAuth handshake happens in front of this service; it hands the
    resolved Discord profile over as query arguments on the callback.
    Returns ``{externalId, displayName, avatarUrl}`` or None.
    """
    user_id = request.args.get('id')
    username = request.args.get('username')
    if not user_id or not username:
        return None
    cdn = current_app.config.get('AVATAR_CDN_URL')
    return {
        'externalId': user_id,
        'displayName': username,
        'avatarUrl': discord_avatar_url(
            user_id,
            request.args.get('avatar'),
            request.args.get('discriminator'),
            cdn,
        ),
    }


def resolve_identity(request):
    provider = current_app.config.get('IDENTITY_PROVIDER') or discord_query_identity
    return provider(request)
