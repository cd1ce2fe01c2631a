from jinja2 import BaseLoader, Environment, select_autoescape

from .issuer import LinkIssuer


def register_secret_helpers(env: Environment, issuer: LinkIssuer) -> Environment:
    """Expose issuance to templates as both a filter and a function.

        {{ file.path | secret }}
        {{ file.path | secret(30, true, 'media') }}
        {{ secret('/queuedresize/abc123', 15) }}
    """
    env.filters["secret"] = issuer.make_secret_link
    env.globals["secret"] = issuer.make_secret_link
    return env


def build_environment(issuer: LinkIssuer, loader: BaseLoader | None = None) -> Environment:
    env = Environment(loader=loader, autoescape=select_autoescape(default_for_string=True))
    return register_secret_helpers(env, issuer)
