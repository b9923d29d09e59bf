"""
cas_authz.plugin

CAS authentication + casbin authorization plugin.

Responsibilities:
- Host plugin contract and chain adapter.
- CAS client and casbin enforcer boundaries.
- The composed `CasPlugin`.
"""

from cas_authz.plugin.cas_plugin import CasPlugin, PipelineMode
from cas_authz.plugin.host import PluginChainMiddleware

__all__ = ["CasPlugin", "PipelineMode", "PluginChainMiddleware"]
