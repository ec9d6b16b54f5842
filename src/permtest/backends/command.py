"""Backend that runs an external permutation binary through a work directory."""
from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import numpy as np

from permtest.core.models import ElementKind, ModeLabel, ScaleValue, TensorDescriptor
from permtest.errors import BackendUnavailable, ConfigurationError

from .base import BackendContext, BackendDriver, DeviceBuffer, Status, parse_kinds

logger = logging.getLogger("permtest.backend")


@dataclass
class CommandSpec:
    argv: List[str]


@dataclass
class CommandBackendConfig:
    workdir: Path
    command: CommandSpec
    prepare: List[CommandSpec] = field(default_factory=list)
    env: Dict[str, str] = field(default_factory=dict)
    input_path: Path = Path("input/a.bin")
    output_path: Path = Path("output/b.bin")


class CommandBackendDriver(BackendDriver):
    """Backend that hands buffers to a user binary as raw little-endian files.

    Device buffers live in host memory. ``permute`` writes A to
    ``input_path``, runs ``command`` with ``{token}`` placeholders rendered,
    then reads B back from ``output_path``.
    """

    name = "command"

    def __init__(
        self,
        config: CommandBackendConfig,
        *,
        name: Optional[str] = None,
        supported_kinds: Optional[Iterable[Any]] = None,
        max_elements: Optional[int] = None,
    ) -> None:
        if name:
            self.name = name
        self.config = config
        self.supported_kinds = parse_kinds(supported_kinds, BackendDriver.supported_kinds)
        self.max_elements = max_elements

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "CommandBackendDriver":
        workdir = Path(config.get("workdir", ".")).expanduser().resolve()
        env = {str(k): str(v) for k, v in (config.get("env") or {}).items()}
        backend_config = CommandBackendConfig(
            workdir=workdir,
            command=CommandSpec(argv=_normalize_command(config.get("command"))),
            prepare=_normalize_command_list(config.get("prepare")),
            env=env,
            input_path=Path(config.get("input", "input/a.bin")),
            output_path=Path(config.get("output", "output/b.bin")),
        )
        max_elements = config.get("max_elements")
        return cls(
            backend_config,
            name=config.get("name"),
            supported_kinds=config.get("dtypes"),
            max_elements=int(max_elements) if max_elements is not None else None,
        )

    def create_context(self) -> BackendContext:
        if not self.config.workdir.is_dir():
            raise BackendUnavailable(f"work directory {self.config.workdir} does not exist")
        for command in self.config.prepare:
            ok = self._run(command.argv, {})
            if not ok:
                raise BackendUnavailable(f"prepare command failed: {' '.join(command.argv)}")
        return super().create_context()

    def allocate(self, element_count: int, kind: ElementKind) -> DeviceBuffer:
        return DeviceBuffer(
            element_count=element_count,
            kind=kind,
            storage=np.zeros(element_count, dtype=kind.dtype),
        )

    def copy_host_to_device(self, buffer: DeviceBuffer, host: np.ndarray) -> None:
        data = np.asarray(host, dtype=buffer.kind.dtype).reshape(-1)
        if data.size != buffer.element_count:
            raise ValueError(
                f"Host buffer has {data.size} elements, device buffer expects {buffer.element_count}"
            )
        np.copyto(buffer.storage, data)

    def copy_device_to_host(self, buffer: DeviceBuffer) -> np.ndarray:
        return np.array(buffer.storage, copy=True)

    def permute(
        self,
        context: BackendContext,
        scale: ScaleValue,
        src: DeviceBuffer,
        src_desc: TensorDescriptor,
        src_modes: Sequence[ModeLabel],
        dst: DeviceBuffer,
        dst_desc: TensorDescriptor,
        dst_modes: Sequence[ModeLabel],
        compute: ElementKind,
        stream: int = 0,
    ) -> Status:
        input_path = self.config.workdir / self.config.input_path
        output_path = self.config.workdir / self.config.output_path
        input_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if output_path.exists():
            output_path.unlink()
        src.storage.astype(src_desc.kind.dtype).tofile(input_path)
        tokens = {
            "input": str(input_path),
            "output": str(output_path),
            "dtype": src_desc.kind.value,
            "compute_dtype": compute.value,
            "extents_a": ",".join(str(e) for e in src_desc.extents),
            "extents_b": ",".join(str(e) for e in dst_desc.extents),
            "modes_a": "".join(src_modes),
            "modes_b": "".join(dst_modes),
            "scale": repr(float(scale.value)),
            "scale_bits": f"0x{scale.bits:0{scale.kind.dtype.itemsize * 2}x}",
            "stream": str(stream),
            "workdir": str(self.config.workdir),
        }
        if not self._run(self.config.command.argv, tokens):
            return Status.EXECUTION_FAILED
        if not output_path.exists():
            logger.error("[%s] expected output missing: %s", self.name, output_path)
            return Status.EXECUTION_FAILED
        data = np.fromfile(output_path, dtype=dst_desc.kind.dtype)
        if data.size != dst.element_count:
            logger.error(
                "[%s] output has %d elements, expected %d", self.name, data.size, dst.element_count
            )
            return Status.EXECUTION_FAILED
        np.copyto(dst.storage, data)
        return Status.SUCCESS

    def _run(self, argv: Sequence[str], tokens: Mapping[str, str]) -> bool:
        rendered = [_render_template(part, tokens) for part in argv]
        env = os.environ.copy()
        env.update({k: _render_template(v, tokens) for k, v in self.config.env.items()})
        logger.info("[%s] run: %s", self.name, shlex.join(rendered))
        try:
            process = subprocess.run(
                rendered,
                cwd=str(self.config.workdir),
                env=env,
                capture_output=True,
                text=True,
            )
        except OSError as exc:
            logger.error("[%s] could not start %s: %s", self.name, rendered[0], exc)
            return False
        if process.stdout.strip():
            logger.info("%s", process.stdout.rstrip())
        if process.returncode != 0:
            logger.error(
                "[%s] command failed (exit code %s): %s",
                self.name,
                process.returncode,
                process.stderr.strip(),
            )
            return False
        if process.stderr.strip():
            logger.warning("%s", process.stderr.rstrip())
        return True


def _render_template(value: str, tokens: Mapping[str, str]) -> str:
    if not tokens or "{" not in value or "}" not in value:
        return value
    try:
        return value.format(**tokens)
    except KeyError as exc:
        available = ", ".join(sorted(tokens.keys()))
        raise ConfigurationError(
            f"Unknown token {exc} in value '{value}'. Available tokens: {available}"
        ) from exc


def _normalize_command(value: Any) -> List[str]:
    if value is None:
        raise ConfigurationError("Command backend requires 'command' as string, list, or mapping")
    if isinstance(value, (str, os.PathLike)):
        return shlex.split(str(value))
    if isinstance(value, list):
        return [str(part) for part in value]
    if isinstance(value, dict):
        executable = value.get("binary") or value.get("executable")
        if not executable:
            raise ConfigurationError("Command backend 'command' mapping requires 'binary' or 'executable'")
        args = value.get("args", [])
        if isinstance(args, (str, os.PathLike)):
            args_list = [str(args)]
        elif isinstance(args, list):
            args_list = [str(part) for part in args]
        else:
            raise ConfigurationError("Command backend 'args' must be a list or string")
        return [str(executable)] + args_list
    raise ConfigurationError("Command backend requires 'command' as string, list, or mapping")


def _normalize_command_list(raw: Any) -> List[CommandSpec]:
    commands: List[CommandSpec] = []
    if not raw:
        return commands
    if isinstance(raw, (str, os.PathLike, dict)):
        raw = [raw]
    elif isinstance(raw, list) and raw and not isinstance(raw[0], (list, dict)):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        raise ConfigurationError("Command backend 'prepare' must be a list")
    for entry in raw:
        commands.append(CommandSpec(argv=_normalize_command(entry)))
    return commands

