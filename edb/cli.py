#!/usr/bin/env python3
"""
edb  —  eXist-db collection sync over REST, with rolling backups
================================================================

Subcommands:
  init       Create a .edb config file in the current directory.
  edit       Open the nearest .edb in $EDITOR.
  export     Export the remote collection → local dir.
  import     Import local dir → remote collection (auto-backup first).
  watch      Watch the local dir and upload every changed file.
  backup     Back up the remote collection → backups dir.
  backups    List the stored backups.
  rollback   Restore the collection from a backup ('last' or a timestamp).

Run 'edb <subcommand> --help' for more details.
"""
import argparse
import os
import shlex
import subprocess
import sys
from pathlib import Path

from . import config as _cfg
from .errors import EdbError
from .utils.logging import error, set_verbose

EXIT_PARTIAL = 2


def _load_settings(args):
    """Settings for args.profile, with command-line overrides applied."""
    settings, path = _cfg.load_settings(args.profile or "default")
    if args.verbose:
        print(f"[config] Using {path or 'built-in defaults + environment'}")
    return settings.with_overrides(
        workers=getattr(args, "workers", None),
        require_clean_backup=getattr(args, "require_clean_backup", None) or None,
    )


def _print_summary(title: str, result, args) -> int:
    print()
    print(f"{'─' * 64}")
    print(f" {title} SUMMARY")
    print(f"  Collections : {len(result.containers)}")
    print(f"  Resources   : {len(result.resources)}")
    print(f"  Skipped     : {len(result.skipped)}")
    print(f"  Failed      : {len(result.failed)}")
    print(f"{'─' * 64}")
    if result.failed:
        print()
        print("⚠  Some items failed — the remote/local tree may be partially synced:")
        for w in result.failed:
            print(f"   - {w}")
        if getattr(args, "strict", False):
            return EXIT_PARTIAL
    return 0


# ── init ─────────────────────────────────────────────────────────────────────

def _ask(prompt: str, default: str) -> str:
    if not sys.stdin.isatty():
        return default
    val = input(f"{prompt} [{default}]: ").strip()
    return val or default


def cmd_init(args):
    """Create a .edb profile file in the current directory."""
    target = Path.cwd() / _cfg.PROJECT_FILE

    if target.exists() and not args.force:
        print(f"error: {_cfg.PROJECT_FILE} already exists in {Path.cwd()}", file=sys.stderr)
        print("Remove it or use --force to regenerate.", file=sys.stderr)
        sys.exit(1)

    g_defaults = _cfg.load_global_config().get("defaults", {}) or {}

    server = args.server or _ask("Server URL", g_defaults.get("server", _cfg.DEFAULT_SERVER_URL))
    user = args.user or _ask("User", g_defaults.get("user", _cfg.DEFAULT_USER))
    collection = args.collection or _ask("Collection", _cfg.DEFAULT_COLLECTION)
    local_dir = (args.local or "./" + collection.rstrip("/").rsplit("/", 1)[-1]).replace("\\", "/")
    backup_dir = str(args.backup_dir or g_defaults.get("backup_dir", _cfg.DEFAULT_BACKUP_DIR)).replace("\\", "/")
    keep = args.keep if args.keep is not None else _cfg.DEFAULT_BACKUP_KEEP

    def _yq(value: str) -> str:
        """Wrap a string in YAML single quotes, escaping embedded single quotes."""
        return "'" + str(value).replace("'", "''") + "'"

    lines = [
        "# .edb — edb project configuration",
        "#",
        "# profiles: list of sync profiles for this project.",
        "# Relative directories are resolved against this file's directory.",
        "# The password may also come from the EDB_PASS environment variable.",
        "profiles:",
        f"  - name: {args.profile or 'default'}",
        f"    server: {_yq(server)}",
        f"    user: {_yq(user)}",
        f"    password: {_yq(args.password or _cfg.DEFAULT_PASSWORD)}",
        f"    collection: {_yq(collection)}",
        f"    local_dir: {_yq(local_dir)}",
        f"    backup_dir: {_yq(backup_dir)}",
        f"    backup_keep: {int(keep)}",
    ]
    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target} — adjust it, then run:")
    print("   edb export   or   edb import")
    if args.verbose:
        print(content)


# ── edit ─────────────────────────────────────────────────────────────────────

def cmd_edit(args):
    """Open the nearest .edb in $EDITOR."""
    path = _cfg.find_edb_file()
    if path is None:
        print("error: no .edb file found in this directory or any parent.", file=sys.stderr)
        print("Run 'edb init' first.", file=sys.stderr)
        sys.exit(1)
    editor = shlex.split(os.environ.get("EDITOR", "nano"))
    sys.exit(subprocess.call(editor + [str(path)]))


# ── sync commands ────────────────────────────────────────────────────────────

def cmd_export(args):
    from .core.sync_engine import run_export
    result = run_export(_load_settings(args))
    return _print_summary("EXPORT", result, args)


def cmd_import(args):
    from .core.sync_engine import run_import
    snap, result = run_import(_load_settings(args))
    if snap.path.is_dir():
        print(f"\nBackup taken before import: {snap.path}")
    else:
        print("\nNo backup was kept: the remote collection could not be listed.")
    return _print_summary("IMPORT", result, args)


def cmd_backup(args):
    from .core.sync_engine import run_backup
    snap = run_backup(_load_settings(args))
    return _print_summary(f"BACKUP {snap.snapshot_id}", snap.result, args)


def cmd_backups(args):
    from .core.sync_engine import list_backups
    settings = _load_settings(args)
    ids = list_backups(settings)
    if not ids:
        print(f"No backups for '{settings.app_name}' in {settings.backup_dir}")
        return 0
    print(f"Backups for '{settings.app_name}' ({settings.backup_dir / settings.app_name}):")
    for sid in ids:
        print(f"  - {sid}")
    return 0


def cmd_rollback(args):
    from .core.sync_engine import run_rollback
    sid, result = run_rollback(_load_settings(args), args.target)
    return _print_summary(f"ROLLBACK {sid}", result, args)


def cmd_watch(args):
    from .core.sync_engine import run_watch
    result = run_watch(_load_settings(args))
    print(f"\nUploaded {len(result.resources)} file(s), {len(result.failed)} failed.")
    return 0


# ── main ─────────────────────────────────────────────────────────────────────

def _common(p, sync: bool = False):
    p.add_argument("--profile", metavar="NAME", default="default",
                   help="Profile to use (default: default)")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Show every request, not just actions")
    if sync:
        p.add_argument("--strict", action="store_true",
                       help=f"Exit with status {EXIT_PARTIAL} if any item failed")


def main(argv=None):
    """CLI entry point for edb"""
    parser = argparse.ArgumentParser(
        prog="edb",
        description="eXist-db collection sync over REST, with rolling backups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser("init", help="Create a .edb config file here",
                                   description="Create a .edb YAML config file for this project.")
    init_p.add_argument("--server", metavar="URL", help="eXist base URL (e.g. http://localhost:8080/exist)")
    init_p.add_argument("--user", metavar="NAME", help="eXist user (default: admin)")
    init_p.add_argument("--password", metavar="PASS", help="eXist password")
    init_p.add_argument("--collection", metavar="PATH", help="Remote collection (e.g. /db/apps/sympa)")
    init_p.add_argument("--local", metavar="PATH", help="Local mirror directory")
    init_p.add_argument("--backup-dir", metavar="PATH", help="Backups directory (default: ./backups)")
    init_p.add_argument("--keep", type=int, metavar="N", help="Backups to keep, 0 = all (default: 10)")
    init_p.add_argument("--force", action="store_true", help="Overwrite existing .edb")
    init_p.add_argument("-n", "--dry-run", action="store_true", help="Preview without writing files")
    _common(init_p)

    edit_p = subparsers.add_parser("edit", help="Open the nearest .edb in $EDITOR")
    _common(edit_p)

    # ── sync ──────────────────────────────────────────────────────────────────
    export_p = subparsers.add_parser("export", help="Export from eXist → local")
    _common(export_p, sync=True)

    import_p = subparsers.add_parser("import", help="Import local → eXist (auto-backup first)")
    _common(import_p, sync=True)
    import_p.add_argument("--workers", type=int, metavar="N",
                          help="Parallel file uploads (default: 1)")
    import_p.add_argument("--require-clean-backup", action="store_true",
                          help="Abort the import if the automatic backup missed anything")

    watch_p = subparsers.add_parser("watch", help="Watch local dir and upload changes")
    _common(watch_p)

    backup_p = subparsers.add_parser("backup", help="Back up remote collection → backups dir")
    _common(backup_p, sync=True)

    backups_p = subparsers.add_parser("backups", help="List stored backups")
    _common(backups_p)

    rollback_p = subparsers.add_parser("rollback", help="Restore from a backup",
                                       description="Restore the collection from 'last' or a backup timestamp.")
    rollback_p.add_argument("target", nargs="?", default="last", metavar="last|TIMESTAMP",
                            help="Backup to restore (default: last)")
    rollback_p.add_argument("--workers", type=int, metavar="N",
                            help="Parallel file uploads (default: 1)")
    _common(rollback_p, sync=True)

    args = parser.parse_args(argv)

    commands = {
        "init": cmd_init,
        "edit": cmd_edit,
        "export": cmd_export,
        "import": cmd_import,
        "watch": cmd_watch,
        "backup": cmd_backup,
        "backups": cmd_backups,
        "rollback": cmd_rollback,
    }
    if args.command not in commands:
        parser.print_help()
        sys.exit(1)

    set_verbose(getattr(args, "verbose", False))
    try:
        rc = commands[args.command](args)
    except EdbError as exc:
        error(str(exc))
        sys.exit(1)
    except KeyboardInterrupt:
        print()
        error("Interrupted by user.")
        sys.exit(130)
    sys.exit(rc or 0)


if __name__ == "__main__":
    main()
