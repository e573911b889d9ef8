import os
from pathlib import Path
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterable, List, Tuple, Union

if TYPE_CHECKING:
    from backend_shell.local.config import MergedSettings

PathLike = Union[str, "os.PathLike[str]"]


def resolve_against_anchor(relative_dir: PathLike, anchor: PathLike) -> Path:
    """
    Resolves a working directory against an anchor without touching the filesystem.

    Relative directories are joined to the anchor, absolute ones are kept. The result
    is made absolute against the current directory and normalised lexically, so
    symlinks are not followed and missing directories are not reported here.

    :param relative_dir: The directory to resolve.
    :param anchor: The root the directory is relative to.
    :return: An absolute, normalised Path.
    """
    anchor_path = Path(anchor).expanduser()
    joined = anchor_path / Path(relative_dir).expanduser()
    return Path(os.path.normpath(os.path.abspath(joined)))


@dataclass(frozen=True)
class LaunchConfig:
    """Immutable description of the process to run."""

    executable: str
    arguments: Tuple[str, ...] = ()
    working_directory: Path = Path(".")

    def __post_init__(self) -> None:
        # Frozen dataclass: normalise through object.__setattr__ once, at construction.
        object.__setattr__(self, "executable", str(self.executable))
        object.__setattr__(self, "arguments", tuple(str(arg) for arg in self.arguments))
        object.__setattr__(
            self, "working_directory", resolve_against_anchor(self.working_directory, ".")
        )

    @classmethod
    def from_anchor(
        cls,
        executable: str,
        arguments: Iterable[str],
        relative_dir: PathLike,
        anchor: PathLike,
    ) -> "LaunchConfig":
        """Builds a config whose working directory is resolved against `anchor`."""
        return cls(executable, tuple(arguments), resolve_against_anchor(relative_dir, anchor))

    @classmethod
    def from_settings(cls, config: "MergedSettings") -> "LaunchConfig":
        """
        Builds the backend launch from the application settings.

        :param config: The merged settings object.
        :raises ConfigurationError: If BACKEND_ARGS cannot be split.
        """
        return cls.from_anchor(
            config.BACKEND_EXECUTABLE,
            config.backend_arguments(),
            config.BACKEND_WORKDIR,
            config.BACKEND_ROOT,
        )

    @property
    def command(self) -> List[str]:
        """The full argument vector, executable first."""
        return [self.executable, *self.arguments]

    def describe(self) -> str:
        return f"{' '.join(self.command)} (cwd: {self.working_directory})"
