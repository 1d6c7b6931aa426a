"""Allow ``python -m enforceauth_deploy``."""

from enforceauth_deploy.main import main

if __name__ == "__main__":
    main()
