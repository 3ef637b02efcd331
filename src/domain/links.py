"""Outbound search link generation.

The app never talks to the network itself. It only builds a web search URL
that the operator can open in a browser.
"""

from urllib.parse import quote_plus

SEARCH_BASE_URL = "https://www.google.com/search?q="

# Appended to the disease name so results lean towards clinical material
DEFAULT_SEARCH_SUFFIX = "symptoms diagnosis treatment"


def build_search_url(disease_name: str, suffix: str = DEFAULT_SEARCH_SUFFIX) -> str:
    """Build a web search URL for a disease name.

    Parameters:
        disease_name: Name of the disease (may be empty)
        suffix: Fixed phrase appended to the query

    Returns:
        str: Search URL with the query percent-encoded

    Example:
        >>> build_search_url("Anaemia (General)", "treatment")
        'https://www.google.com/search?q=Anaemia+%28General%29+treatment'
    """
    query = " ".join(part for part in (disease_name.strip(), suffix.strip()) if part)
    return SEARCH_BASE_URL + quote_plus(query)
