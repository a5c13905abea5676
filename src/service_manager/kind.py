"""Backend identities and native backend resolution."""

import logging
import sys
from enum import StrEnum

from service_manager.errors import UnsupportedError

logger = logging.getLogger(__name__)

BSD_PLATFORMS = ("freebsd", "openbsd", "netbsd", "dragonfly")


class ServiceManagerKind(StrEnum):
    """The closed set of supported native service managers."""

    LAUNCHD = "launchd"
    OPENRC = "openrc"
    RCD = "rcd"
    SC = "sc"
    SCM = "scm"
    SYSTEMD = "systemd"
    WINSW = "winsw"

    @classmethod
    def native(cls) -> "ServiceManagerKind":
        """Pick the service manager native to the running OS.

        Resolution order:
        1. macOS: launchd
        2. Windows: WinSW when it is installed, otherwise sc.exe
        3. BSD family: rc.d
        4. Linux: systemd if available, then OpenRC

        Several init systems can live on one Linux install, so the Linux
        and Windows choices are probed at runtime rather than fixed.

        Raises:
            UnsupportedError: If no supported manager is present.
        """
        platform = sys.platform

        if platform == "darwin":
            return cls.LAUNCHD

        if platform == "win32":
            from service_manager.backends.winsw import WinSwServiceManager

            if WinSwServiceManager().available():
                return cls.WINSW
            return cls.SC

        if platform.startswith(BSD_PLATFORMS):
            return cls.RCD

        if platform.startswith("linux"):
            from service_manager.backends.openrc import OpenRcServiceManager
            from service_manager.backends.systemd import SystemdServiceManager

            if SystemdServiceManager().available():
                return cls.SYSTEMD
            if OpenRcServiceManager().available():
                return cls.OPENRC
            raise UnsupportedError(
                "Only systemd and OpenRC are supported on Linux, and neither was found"
            )

        raise UnsupportedError(f"No native service manager for platform {platform}")
