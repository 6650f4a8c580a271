#!/usr/bin/env python3
"""
ZKBRIDGE CLI

Command-line host for the prover bridge.

Usage:
    zkbridge <command> [subcommand] [options]

Commands:
    setup-srs   Load an SRS sized explicitly or for a circuit
    execute     Solve a circuit and print the entry witness
    prove       Produce a proof
    verify      Check a proof
    vk          Derive a verification key
    config      Configuration management

Circuits are given either as a bytecode file (--bytecode) or a compiled
manifest (--manifest). Witnesses are given as a JSON object of index to hex
value (--witness) or, with a manifest, as named inputs (--inputs).

Exit codes:
    0   success
    1   proof did not verify, or usage error
    2   caller input error
    3   backend failure
    4   internal defect

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import argparse
import json
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from tools.zkbridge.abi import CircuitManifest
from tools.zkbridge.errors import BridgeError, ErrorClass

__version__ = "0.1.0"

EXIT_CODES = {
    ErrorClass.CALLER_INPUT: 2,
    ErrorClass.CONFIG: 2,
    ErrorClass.BACKEND: 3,
    ErrorClass.DEFECT: 4,
}


class OutputFormat(Enum):
    """Output format options."""
    JSON = "json"
    YAML = "yaml"
    TEXT = "text"


class CLIError(Exception):
    """CLI error with exit code."""
    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


def format_output(data: Any, fmt: OutputFormat = OutputFormat.JSON) -> str:
    """Format data for output."""
    if fmt == OutputFormat.JSON:
        return json.dumps(data, indent=2, default=str)
    elif fmt == OutputFormat.YAML:
        return yaml.dump(data, default_flow_style=False)
    elif isinstance(data, dict):
        lines = []
        for k, v in data.items():
            if isinstance(v, list):
                lines.append(f"{k}:")
                lines.extend(f"  {item}" for item in v)
            else:
                lines.append(f"{k}: {v}")
        return "\n".join(lines)
    return str(data)


def _read_json(path: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as e:
        raise CLIError(f"Cannot read {path}: {e.strerror}")
    except ValueError as e:
        raise CLIError(f"{path} is not valid JSON: {e}")


def _read_text(value: str) -> str:
    """Inline value, or @path to read it from a file."""
    if value.startswith("@"):
        try:
            return Path(value[1:]).read_text(encoding="utf-8").strip()
        except OSError as e:
            raise CLIError(f"Cannot read {value[1:]}: {e.strerror}")
    return value


class ZkBridgeCLI:
    """Main CLI application."""

    def __init__(self):
        self.parser = argparse.ArgumentParser(
            prog="zkbridge",
            description="Zero-knowledge prover bridge CLI",
            formatter_class=argparse.RawDescriptionHelpFormatter,
        )
        self.parser.add_argument(
            "--version", "-V",
            action="version",
            version=f"zkbridge {__version__}",
        )
        self.parser.add_argument(
            "--format", "-f",
            choices=["json", "yaml", "text"],
            default="json",
            help="Output format (default: json)",
        )
        self.parser.add_argument(
            "--quiet", "-q",
            action="store_true",
            help="Suppress error output",
        )
        self.parser.add_argument(
            "--config", "-c",
            help="Configuration file (YAML)",
        )

        self.subparsers = self.parser.add_subparsers(dest="command", help="Commands")
        self._register_commands()

    def _register_commands(self) -> None:
        self._register_circuit_commands()
        self._register_config_commands()

    @staticmethod
    def _add_circuit_source(parser: argparse.ArgumentParser, required: bool = True) -> None:
        source = parser.add_mutually_exclusive_group(required=required)
        source.add_argument("--bytecode", "-b", help="Bytecode file")
        source.add_argument("--manifest", "-m", help="Compiled circuit manifest (JSON)")

    @staticmethod
    def _add_witness_source(parser: argparse.ArgumentParser) -> None:
        source = parser.add_mutually_exclusive_group(required=True)
        source.add_argument("--witness", "-w", help="Witness JSON: {\"0\": \"0x3\", ...}")
        source.add_argument("--inputs", "-i", help="Named inputs JSON (requires --manifest)")

    @staticmethod
    def _add_flags(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("--recursive", action="store_true", default=None,
                            help="Recursion-friendly proof")
        parser.add_argument("--low-memory", action="store_true", default=None,
                            help="Low-memory proving mode")

    def _register_circuit_commands(self) -> None:
        # setup-srs
        setup = self.subparsers.add_parser("setup-srs", help="Load an SRS")
        sizing = setup.add_mutually_exclusive_group(required=True)
        sizing.add_argument("--size", "-n", type=int, help="Number of points")
        sizing.add_argument("--bytecode", "-b", help="Size for this bytecode file")
        sizing.add_argument("--manifest", "-m", help="Size for this circuit manifest")
        setup.add_argument("--srs-path", help="Local SRS file")
        setup.add_argument("--recursive", action="store_true", default=None)

        # execute
        execute = self.subparsers.add_parser("execute", help="Solve a circuit")
        self._add_circuit_source(execute)
        self._add_witness_source(execute)

        # prove
        prove = self.subparsers.add_parser("prove", help="Produce a proof")
        self._add_circuit_source(prove)
        self._add_witness_source(prove)
        prove.add_argument("--variant", "-t", help="Proof variant")
        prove.add_argument("--vk", help="Verification key hex (or @file)")
        prove.add_argument("--srs-path", help="Local SRS file")
        self._add_flags(prove)

        # verify
        verify = self.subparsers.add_parser("verify", help="Check a proof")
        self._add_circuit_source(verify, required=False)
        verify.add_argument("--proof", "-p", required=True, help="Proof hex (or @file)")
        verify.add_argument("--vk", required=True, help="Verification key hex (or @file)")
        verify.add_argument("--variant", "-t", help="Proof variant")
        verify.add_argument("--num-points", type=int, help="SRS points (required for plonk)")
        verify.add_argument("--srs-path", help="Local SRS file")

        # vk
        vk = self.subparsers.add_parser("vk", help="Derive a verification key")
        self._add_circuit_source(vk)
        vk.add_argument("--variant", "-t", help="Proof variant")
        vk.add_argument("--srs-path", help="Local SRS file")
        self._add_flags(vk)

    def _register_config_commands(self) -> None:
        config = self.subparsers.add_parser("config", help="Configuration management")
        config_sub = config.add_subparsers(dest="subcommand")

        get = config_sub.add_parser("get", help="Get configuration value")
        get.add_argument("path", help="Config path (e.g., srs.max_points)")

        config_sub.add_parser("show", help="Show all configuration")
        config_sub.add_parser("validate", help="Validate configuration")

    def run(self, args: Optional[List[str]] = None) -> int:
        """Run the CLI."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 0

        try:
            fmt = OutputFormat(parsed.format)
            from tools.zkbridge.config import get_config_manager
            if parsed.config:
                get_config_manager().load_from_file(parsed.config)
            else:
                get_config_manager().load_defaults()

            result = self._dispatch(parsed)

            if result is not None:
                print(format_output(result, fmt))

            if parsed.command == "verify" and not result["valid"]:
                return 1
            return 0

        except BridgeError as e:
            if not parsed.quiet:
                print(json.dumps({"error": e.to_dict()}, indent=2), file=sys.stderr)
            return EXIT_CODES[e.error_class]

        except CLIError as e:
            if not parsed.quiet:
                print(f"Error: {e}", file=sys.stderr)
            return e.exit_code

    def _dispatch(self, args: argparse.Namespace) -> Any:
        """Dispatch command to handler."""
        cmd = args.command.replace("-", "_")
        subcmd = getattr(args, "subcommand", None)

        if cmd == "config" and not subcmd:
            raise CLIError("config requires a subcommand: get, show, validate")

        handler_name = f"_handle_{cmd}_{subcmd}" if subcmd else f"_handle_{cmd}"
        handler = getattr(self, handler_name, None)

        if handler is None:
            raise CLIError(f"Unknown command: {args.command} {subcmd or ''}")

        return handler(args)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _bridge(self):
        from tools.zkbridge.boundary import ProverBridge
        return ProverBridge()

    def _manifest(self, args: argparse.Namespace) -> Optional[CircuitManifest]:
        if getattr(args, "manifest", None):
            return CircuitManifest.from_dict(_read_json(args.manifest))
        return None

    def _bytecode(self, args: argparse.Namespace) -> Optional[str]:
        manifest = self._manifest(args)
        if manifest is not None:
            return manifest.bytecode
        if getattr(args, "bytecode", None):
            return _read_text("@" + args.bytecode)
        return None

    def _witness(self, args: argparse.Namespace) -> Dict[str, Any]:
        if args.witness:
            witness = _read_json(args.witness)
            if not isinstance(witness, dict):
                raise CLIError("Witness file must hold a JSON object")
            return witness
        manifest = self._manifest(args)
        if manifest is None:
            raise CLIError("--inputs requires --manifest")
        inputs = _read_json(args.inputs)
        if not isinstance(inputs, dict):
            raise CLIError("Inputs file must hold a JSON object")
        return manifest.witness_map(inputs)

    @staticmethod
    def _flag(value: Optional[bool], path: str) -> bool:
        if value is not None:
            return value
        from tools.zkbridge.config import get_config_manager
        return bool(get_config_manager().get(path))

    # -------------------------------------------------------------------------
    # Circuit handlers
    # -------------------------------------------------------------------------

    def _handle_setup_srs(self, args: argparse.Namespace) -> Any:
        sizing = args.size if args.size is not None else self._bytecode(args)
        recursive = self._flag(args.recursive, "proving.recursive")
        num_points = self._bridge().setup_srs(sizing, args.srs_path, recursive)
        return {"num_points": num_points}

    def _handle_execute(self, args: argparse.Namespace) -> Any:
        bytecode = self._bytecode(args)
        witness = self._bridge().execute(bytecode, self._witness(args))
        return {"witness": witness}

    def _handle_prove(self, args: argparse.Namespace) -> Any:
        bytecode = self._bytecode(args)
        witness = self._witness(args)
        recursive = self._flag(args.recursive, "proving.recursive")
        low_memory = self._flag(args.low_memory, "proving.low_memory")
        bridge = self._bridge()
        bridge.setup_srs(bytecode, args.srs_path, recursive)

        vk = _read_text(args.vk) if args.vk else None
        variant = bridge.resolve_variant(args.variant)
        if vk is None and variant.requires_supplied_vk():
            vk = bridge.get_verification_key(bytecode, variant.value, recursive, low_memory)

        result = bridge.prove(bytecode, witness, variant.value, vk, recursive, low_memory)
        if isinstance(result, tuple):
            proof, vk = result
        else:
            proof = result
        return {"variant": variant.value, "proof": proof, "vk": vk}

    def _handle_verify(self, args: argparse.Namespace) -> Any:
        bridge = self._bridge()
        bytecode = self._bytecode(args)
        if bytecode is not None:
            bridge.setup_srs(bytecode, args.srs_path)
        elif args.num_points is not None:
            bridge.setup_srs(args.num_points, args.srs_path)
        else:
            raise CLIError("verify needs --bytecode, --manifest or --num-points")

        valid = bridge.verify(
            _read_text(args.proof), _read_text(args.vk), args.variant, args.num_points
        )
        return {"valid": valid}

    def _handle_vk(self, args: argparse.Namespace) -> Any:
        bytecode = self._bytecode(args)
        recursive = self._flag(args.recursive, "proving.recursive")
        low_memory = self._flag(args.low_memory, "proving.low_memory")
        bridge = self._bridge()
        bridge.setup_srs(bytecode, args.srs_path, recursive)
        return {"vk": bridge.get_verification_key(bytecode, args.variant, recursive, low_memory)}

    # -------------------------------------------------------------------------
    # Config handlers
    # -------------------------------------------------------------------------

    def _handle_config_get(self, args: argparse.Namespace) -> Any:
        from tools.zkbridge.config import get_config_manager
        return {"path": args.path, "value": get_config_manager().get(args.path)}

    def _handle_config_show(self, args: argparse.Namespace) -> Any:
        from tools.zkbridge.config import get_config_manager
        return get_config_manager().config.to_dict()

    def _handle_config_validate(self, args: argparse.Namespace) -> Any:
        from tools.zkbridge.config import get_config_manager
        errors = get_config_manager().validate()
        return {"valid": len(errors) == 0, "errors": errors}


def main() -> int:
    """CLI entry point."""
    cli = ZkBridgeCLI()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
