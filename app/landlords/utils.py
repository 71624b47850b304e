# app/landlords/utils.py

from typing import Optional


def bare_host(host: str) -> str:
    """Strip the port and normalise the case of a Host header value."""
    return host.split(":")[0].strip().lower()


def extract_subdomain(host: str, root_domain: str) -> Optional[str]:
    """
    Return the landlord subdomain carried by a Host header, if any.

    `acme.localhost:3000` -> `acme`, `acme.example.com` -> `acme` when the
    root domain is `example.com`. The apex, `www` and plain `localhost`
    carry no subdomain.
    """
    hostname = bare_host(host)
    if not hostname:
        return None

    if hostname == "localhost" or hostname.endswith(".localhost"):
        parts = hostname.split(".")
        if len(parts) > 1 and parts[0] not in ("localhost", "www"):
            return parts[0]
        return None

    apex = root_domain.lower()
    if hostname == apex or not hostname.endswith(f".{apex}"):
        return None

    subdomain = hostname[: -(len(apex) + 1)]
    if not subdomain or subdomain == "www":
        return None
    return subdomain
