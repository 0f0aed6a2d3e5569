"""Django settings for the cloudbox project.

Settings are split into components, each reading its values from the
environment (or ``config/.env``) through python-decouple.
"""

from cloudbox.settings.components.common import *  # noqa: F403
from cloudbox.settings.components.logging import *  # noqa: F403
from cloudbox.settings.components.storages import *  # noqa: F403
from cloudbox.settings.components.drive import *  # noqa: F403
