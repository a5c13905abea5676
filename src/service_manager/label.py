"""Service identity shared by every backend."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ServiceLabel:
    """Label describing a service, e.g. ``org.example.my_application``.

    Label-oriented managers (launchd, sc.exe, the SCM API, WinSW) use the
    qualified name. Script-oriented managers (systemd, OpenRC, rc.d) use
    the script name.
    """

    application: str
    organization: str | None = None
    qualifier: str | None = None

    @classmethod
    def parse(cls, value: str) -> "ServiceLabel":
        """Parse a dotted name in the form ``{qualifier}.{organization}.{application}``.

        One token is the application, two are organization and application,
        and anything past the second dot belongs to the application.
        """
        if not value:
            raise ValueError("Service label cannot be empty")

        tokens = value.split(".")
        if not all(tokens):
            raise ValueError(f"Service label has an empty part: {value!r}")
        match len(tokens):
            case 1:
                return cls(application=tokens[0])
            case 2:
                return cls(organization=tokens[0], application=tokens[1])
            case _:
                return cls(
                    qualifier=tokens[0],
                    organization=tokens[1],
                    application=".".join(tokens[2:]),
                )

    def to_qualified_name(self) -> str:
        """Name in the form ``{qualifier}.{organization}.{application}``."""
        parts = [self.qualifier, self.organization, self.application]
        return ".".join(part for part in parts if part is not None)

    def to_script_name(self) -> str:
        """Name in the form ``{organization}-{application}``."""
        if self.organization is None:
            return self.application
        return f"{self.organization}-{self.application}"

    def __str__(self) -> str:
        return self.to_qualified_name()
