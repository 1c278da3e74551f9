def sanitize_return_path(path: str | None) -> str | None:
    """Keep post-login redirect targets on this site.

    Returns None for anything that is not a plain absolute path, so an
    attacker-supplied ``redirect`` parameter cannot bounce users off-site.
    """
    if not path:
        return None
    if not path.startswith("/") or path.startswith("//"):
        return None
    if "://" in path or "\\" in path:
        return None
    return path
