"""Bot account classification."""

from typing import Optional

BOT_SUFFIXES = ("[bot]", "-bot", "-robot")


def is_bot(login: Optional[str], account_type: Optional[str] = None) -> bool:
    """Return True if the account looks automated.

    An account is a bot when GitHub reports its type as ``Bot`` or when the
    handle ends with ``[bot]``, ``-bot`` or ``-robot`` or mentions
    dependabot anywhere.

    Args:
        login: Account handle (e.g. "renovate[bot]")
        account_type: GitHub account type ("User", "Bot", "Organization")

    Returns:
        True for bot accounts, False otherwise (including a missing login)
    """
    if account_type == "Bot":
        return True
    if not login:
        return False
    handle = login.lower()
    return handle.endswith(BOT_SUFFIXES) or "dependabot" in handle
