from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from trackmod.core.config.io import load_installer_config, read_json_file
from trackmod.core.errors import TrackmodError
from trackmod.core.logger import setup_logging
from trackmod.core.modules.cli import install_result_line, installed_lines, show_payload, uninstall_result_line
from trackmod.core.modules.installer import ModuleInstaller
from trackmod.core.modules.models import ModuleRecord


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Install, update and remove tracking modules")
    ap.add_argument("--config", default=None, help="Path to installer config JSON.")
    ap.add_argument("--libs-root", default=None, help="Override the custom libs root.")
    ap.add_argument("--verbose", action="store_true", help="Debug logging.")
    sub = ap.add_subparsers(dest="command", required=True)

    p_install = sub.add_parser("install", help="Install (or reinstall) a module.")
    p_install.add_argument("--record", default=None, help="Module record JSON (catalog entry).")
    p_install.add_argument("--id", dest="module_id", default=None, help="Module id.")
    p_install.add_argument("--url", default=None, help="Download URL (.dll or archive).")
    p_install.add_argument("--dll", default=None, help="Entry-point file name inside the archive.")

    p_uninstall = sub.add_parser("uninstall", help="Remove an installed module.")
    p_uninstall.add_argument("--id", dest="module_id", required=True)

    sub.add_parser("list", help="List installed modules.")

    p_show = sub.add_parser("show", help="Show an installed module's metadata.")
    p_show.add_argument("--id", dest="module_id", required=True)
    return ap


def _record_from_args(args: argparse.Namespace) -> Optional[ModuleRecord]:
    if args.record:
        rr = read_json_file(args.record)
        if not rr.ok:
            raise ValueError(f"could not read {args.record}: {rr.error}")
        return ModuleRecord.model_validate(rr.data)
    if not args.module_id or not args.url:
        return None
    return ModuleRecord(module_id=args.module_id, download_url=args.url, dll_file_name=args.dll)


def main(argv: Optional[List[str]] = None) -> int:
    ap = _build_parser()
    args = ap.parse_args(argv)

    try:
        cfg = load_installer_config(args.config, overrides={"custom_libs_root": args.libs_root})
    except TrackmodError as e:
        print(f"{e.code}: {e.user_message}", file=sys.stderr)
        return 2
    logger = setup_logging(cfg.log_dir, level=logging.DEBUG if args.verbose else logging.INFO)
    installer = ModuleInstaller.from_config(cfg, logger=logger.getChild("installer"))

    if args.command == "install":
        try:
            record = _record_from_args(args)
        except ValueError as e:
            print(f"invalid module record: {str(e)[:200]}", file=sys.stderr)
            return 2
        if record is None:
            print("install needs --record or both --id and --url", file=sys.stderr)
            return 2
        result = installer.install_detailed(record)
        print(install_result_line(result))
        return 0 if result.ok else 1

    if args.command == "uninstall":
        result = installer.uninstall(args.module_id)
        print(uninstall_result_line(result))
        return 0 if result.ok else 1

    if args.command == "list":
        for line in installed_lines(installer=installer):
            print(line)
        return 0

    if args.command == "show":
        payload = show_payload(installer=installer, module_id=args.module_id)
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return 0 if payload.get("ok") else 1

    ap.print_usage(sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
