"""EnforceAuth Deploy Action.

Deploys OPA policy bundles from CI/CD pipelines using GitHub OIDC workload
identity, then follows the remote deployment pipeline to a terminal outcome
by polling its log stream.
"""

__version__ = "0.1.0"
