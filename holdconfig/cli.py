from __future__ import annotations

import argparse
import importlib.metadata as importlib_metadata
import sys
from pathlib import Path

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # pyright: ignore[reportMissingImports]

from .catalog import (
    bootstrap_project,
    catalog_path,
    copy_template,
    find_template,
    group_from_template,
    load_catalog,
    refresh_project,
    remove_group,
    remove_template,
    save_catalog,
    upsert_group,
    upsert_template,
)
from .config import (
    CONFIG_FILENAMES,
    PYPROJECT_FILENAME,
    Config,
    find_config_path,
    load_config,
)
from .formats import MISSING_CATALOG_ERROR
from .model import (
    CategoryTemplate,
    EnvFile,
    Group,
    Project,
    Variable,
    groups_by_category,
    normalize_category,
)
from .preview import build_merge_preview, format_preview_table, unified_diff
from .scan import read_env_text, safe_env_path, scan_env_files, write_env_text
from .selection import Selection
from .workflow import resolve_selected_groups, save_merged_env_file


def _holdconfig_version() -> str:
    try:
        return importlib_metadata.version("holdconfig")
    except importlib_metadata.PackageNotFoundError:
        return "0+unknown"


def _add_root(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "root",
        type=Path,
        nargs="?",
        default=Path("."),
        help="Project root holding the env files and catalog (default: .)",
    )


def _add_env_file(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--env-file",
        default=None,
        help=(
            "Env file to work on, relative to ROOT "
            "(default: config 'default_env_file' or .env)"
        ),
    )


def _add_select(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "-s",
        "--select",
        action="append",
        default=None,
        metavar="GROUP_ID",
        help=(
            "Group to merge (repeatable). One group per category: a later "
            "--select in the same category replaces the earlier one."
        ),
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="holdconfig",
        description="Keep named groups of env settings and merge them into .env files.",
    )
    p.add_argument(
        "--version",
        action="version",
        version=f"holdconfig {_holdconfig_version()}",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    init = sub.add_parser(
        "init",
        help="Scan env files and create (or refresh) the group catalog.",
    )
    _add_root(init)
    init.add_argument(
        "--force",
        action="store_true",
        help="Rebuild the catalog from scratch, discarding existing groups",
    )

    scan = sub.add_parser("scan", help="List env files found under ROOT.")
    _add_root(scan)

    groups = sub.add_parser("groups", help="List groups of an env file by category.")
    _add_root(groups)
    _add_env_file(groups)

    add_group = sub.add_parser("add-group", help="Add or replace a group.")
    _add_root(add_group)
    _add_env_file(add_group)
    add_group.add_argument("--name", required=True, help="Group name")
    add_group.add_argument(
        "--category",
        default=None,
        help="Category (default: the template name, or Uncategorized)",
    )
    add_group.add_argument(
        "--id",
        dest="group_id",
        default=None,
        help="Replace the group with this id instead of adding a new one",
    )
    add_group.add_argument(
        "--var",
        action="append",
        default=None,
        metavar="KEY=VALUE",
        help="Variable to set (repeatable; overrides template keys)",
    )
    add_group.add_argument(
        "--template",
        default=None,
        help="Seed keys from a category template (name or id)",
    )

    rm_group = sub.add_parser("remove-group", help="Delete a group.")
    rm_group.add_argument("group_id", help="Group id")
    _add_root(rm_group)
    _add_env_file(rm_group)

    templates = sub.add_parser("templates", help="Manage category templates.")
    tsub = templates.add_subparsers(dest="template_cmd", required=True)
    t_list = tsub.add_parser("list", help="List templates")
    _add_root(t_list)
    _add_env_file(t_list)
    t_add = tsub.add_parser("add", help="Add a template")
    t_add.add_argument("--name", required=True, help="Category name")
    t_add.add_argument(
        "--key",
        action="append",
        default=None,
        help="Variable key (repeatable, at least one)",
    )
    t_add.add_argument("--description", default="", help="Free-form description")
    _add_root(t_add)
    _add_env_file(t_add)
    t_rm = tsub.add_parser("remove", help="Delete a template")
    t_rm.add_argument("template_id", help="Template id")
    _add_root(t_rm)
    _add_env_file(t_rm)
    t_copy = tsub.add_parser("copy", help="Duplicate a template")
    t_copy.add_argument("template_id", help="Template id")
    _add_root(t_copy)
    _add_env_file(t_copy)

    preview = sub.add_parser(
        "preview", help="Show which keys a merge would override or add."
    )
    _add_root(preview)
    _add_env_file(preview)
    _add_select(preview)

    merge = sub.add_parser(
        "merge", help="Merge the selected groups into the env file."
    )
    _add_root(merge)
    _add_env_file(merge)
    _add_select(merge)
    merge.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute the merged text but do not write it",
    )
    merge.add_argument(
        "--diff",
        action="store_true",
        help="Print a unified diff of the change",
    )
    merge.add_argument(
        "--encoding-errors",
        choices=["replace", "strict"],
        default=None,
        help="UTF-8 decode policy for the env file (default: replace via config)",
    )

    doctor = sub.add_parser(
        "doctor", help="Show config discovery, env files and catalog health."
    )
    _add_root(doctor)

    return p


def _print_top_level_help(parser: argparse.ArgumentParser) -> None:
    parser.print_help()
    print()
    print("Quick start examples:")
    print("  holdconfig init .")
    print("  holdconfig add-group . --name local --category db --var DB_HOST=localhost")
    print("  holdconfig groups .")
    print("  holdconfig preview . --select <group-id>")
    print("  holdconfig merge . --select <group-id> --dry-run --diff")
    print("  holdconfig doctor .")


def _require_catalog(
    parser: argparse.ArgumentParser, root: Path, cfg: Config, command_name: str
) -> Project:
    try:
        project = load_catalog(root, cfg.catalog)
    except ValueError as e:
        parser.error(f"{command_name}: {e}")
    if project is None:
        parser.error(f"{command_name}: {MISSING_CATALOG_ERROR}")
    return project


def _require_env_file(
    parser: argparse.ArgumentParser,
    project: Project,
    name: str | None,
    cfg: Config,
    command_name: str,
) -> EnvFile:
    wanted = name or cfg.default_env_file
    env_file = project.find_env_file(wanted)
    if env_file is None:
        known = ", ".join(f.path for f in project.env_files) or "none"
        parser.error(
            f"{command_name}: env file not in catalog: {wanted} (known: {known})"
        )
    return env_file


def _parse_var(parser: argparse.ArgumentParser, raw: str) -> Variable:
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        parser.error(f"add-group: expected KEY=VALUE, got {raw!r}")
    return Variable(key=key.strip(), value=value)


def _build_selection(
    parser: argparse.ArgumentParser,
    env_file: EnvFile,
    group_ids: list[str] | None,
    command_name: str,
) -> Selection:
    selection = Selection()
    for group_id in group_ids or []:
        group = env_file.find_group(group_id)
        if group is None:
            parser.error(f"{command_name}: unknown group id: {group_id}")
        previous = selection.by_category.get(group.normalized_category)
        if previous is not None and previous != group_id:
            print(
                f"Note: {group_id} replaces {previous} in category "
                f"{group.normalized_category}",
                file=sys.stderr,
            )
        selection = selection.select_group(group)
    return selection


def _env_path(
    parser: argparse.ArgumentParser, root: Path, env_file: EnvFile, command_name: str
) -> Path:
    try:
        return safe_env_path(root, env_file.path)
    except ValueError as e:
        parser.error(f"{command_name}: {e}")


def _save_catalog(
    parser: argparse.ArgumentParser,
    root: Path,
    project: Project,
    cfg: Config,
    command_name: str,
) -> Project:
    try:
        return save_catalog(root, project, cfg.catalog)
    except ValueError as e:
        parser.error(f"{command_name}: {e}")


def _read_or_empty(path: Path, *, encoding_errors: str) -> str:
    # A catalogued env file that was deleted is recreated by the merge.
    if not path.exists():
        return ""
    return read_env_text(path, encoding_errors=encoding_errors)


def _print_groups(env_file: EnvFile) -> None:
    print(f"{env_file.path}:")
    if not env_file.groups:
        print("  (no groups)")
        return
    for category, members in groups_by_category(env_file.groups).items():
        print(f"  [{category}]")
        for group in members:
            print(f"    {group.id}  {group.name} ({len(group.variables)} vars)")


def _run_init(root: Path, cfg: Config, *, force: bool) -> None:
    discovery = scan_env_files(
        root,
        cfg.env_patterns,
        cfg.exclude,
        respect_gitignore=cfg.respect_gitignore,
    )
    existing = None if force else load_catalog(root, cfg.catalog)
    if existing is None:
        project = bootstrap_project(
            root, discovery.files, encoding_errors=cfg.encoding_errors
        )
    else:
        project = refresh_project(
            root, existing, discovery.files, encoding_errors=cfg.encoding_errors
        )
    project = save_catalog(root, project, cfg.catalog)
    print(
        f"Wrote {cfg.catalog} with {len(project.env_files)} env file(s)."
    )


def _doctor_config_state(path: Path, *, pyproject: bool) -> str:
    if not path.exists():
        return "missing"
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as e:
        return f"present (parse error: {type(e).__name__})"

    section_found = False
    tool = data.get("tool")
    if isinstance(tool, dict) and isinstance(tool.get("holdconfig"), dict):
        section_found = True
    elif not pyproject and isinstance(data.get("holdconfig"), dict):
        section_found = True
    return "present (section found)" if section_found else "present (section missing)"


def _run_doctor(root: Path) -> None:
    root = root.resolve()
    selected = find_config_path(root)
    cfg = load_config(root)

    print("Holdconfig Doctor")
    print(f"Root: {root.as_posix()}")
    print()

    print("Config discovery:")
    print(
        "- precedence: .holdconfig.toml > holdconfig.toml > "
        "pyproject.toml[tool.holdconfig]"
    )
    for name in CONFIG_FILENAMES:
        print(f"- {name}: {_doctor_config_state(root / name, pyproject=False)}")
    pyproject = root / PYPROJECT_FILENAME
    print(f"- {PYPROJECT_FILENAME}: {_doctor_config_state(pyproject, pyproject=True)}")
    if selected is None:
        print("- selected: none (defaults only)")
    else:
        print(f"- selected: {selected.relative_to(root).as_posix()}")

    print()
    print("Env files:")
    discovery = scan_env_files(
        root, cfg.env_patterns, cfg.exclude, respect_gitignore=cfg.respect_gitignore
    )
    if not discovery.files:
        print("- none found")
    for p in discovery.files:
        print(f"- {p.relative_to(root).as_posix()}")

    print()
    print("Catalog:")
    path = catalog_path(root, cfg.catalog)
    try:
        project = load_catalog(root, cfg.catalog)
    except ValueError as e:
        print(f"- {cfg.catalog}: error ({e})")
        return
    if project is None:
        print(f"- {cfg.catalog}: missing")
        return
    print(f"- {path.name}: ok ({len(project.env_files)} env file(s))")
    for env_file in project.env_files:
        try:
            target = safe_env_path(root, env_file.path)
        except ValueError:
            state = "outside root"
        else:
            state = "ok" if target.exists() else "missing on disk"
        print(f"- {env_file.path}: {len(env_file.groups)} group(s), {state}")


def main(argv: list[str] | None = None) -> None:  # noqa: C901
    parser = build_parser()
    raw_argv = list(sys.argv[1:] if argv is None else argv)
    if not raw_argv:
        _print_top_level_help(parser)
        return

    args = parser.parse_args(raw_argv)
    root: Path = args.root
    if not root.exists() or not root.is_dir():
        parser.error(f"{args.cmd}: root is not a directory: {root}")
    cfg = load_config(root)

    if args.cmd == "init":
        try:
            _run_init(root, cfg, force=bool(args.force))
        except ValueError as e:
            parser.error(f"init: {e}")

    elif args.cmd == "scan":
        discovery = scan_env_files(
            root, cfg.env_patterns, cfg.exclude, respect_gitignore=cfg.respect_gitignore
        )
        try:
            project = load_catalog(root, cfg.catalog)
        except ValueError:
            project = None
        known = {f.path for f in project.env_files} if project is not None else set()
        for p in discovery.files:
            rel = p.relative_to(discovery.root).as_posix()
            marker = "" if rel in known else "  (not in catalog)"
            print(f"{rel}{marker}")
        print(f"Found {len(discovery.files)} env file(s).")

    elif args.cmd == "groups":
        project = _require_catalog(parser, root, cfg, "groups")
        if args.env_file is None:
            for env_file in project.env_files:
                _print_groups(env_file)
        else:
            env_file = _require_env_file(parser, project, args.env_file, cfg, "groups")
            _print_groups(env_file)

    elif args.cmd == "add-group":
        project = _require_catalog(parser, root, cfg, "add-group")
        env_file = _require_env_file(parser, project, args.env_file, cfg, "add-group")
        variables: dict[str, Variable] = {}
        category = args.category
        if args.template is not None:
            template = find_template(env_file, args.template)
            if template is None:
                parser.error(f"add-group: unknown template: {args.template}")
            seeded = group_from_template(template, args.name)
            variables.update({v.key: v for v in seeded.variables})
            category = category or seeded.category
        for raw in args.var or []:
            var = _parse_var(parser, raw)
            variables[var.key] = var
        group = Group(
            id=args.group_id or "",
            name=args.name.strip(),
            category=normalize_category(category),
            variables=tuple(variables.values()),
        )
        if not group.name:
            parser.error("add-group: group name must not be empty")
        project, group = upsert_group(project, env_file, group)
        _save_catalog(parser, root, project, cfg, "add-group")
        print(f"Saved group {group.id} ({group.name}) in category {group.category}.")

    elif args.cmd == "remove-group":
        project = _require_catalog(parser, root, cfg, "remove-group")
        env_file = _require_env_file(
            parser, project, args.env_file, cfg, "remove-group"
        )
        try:
            project = remove_group(project, env_file, args.group_id)
        except ValueError as e:
            parser.error(f"remove-group: {e}")
        _save_catalog(parser, root, project, cfg, "remove-group")
        print(f"Removed group {args.group_id}.")

    elif args.cmd == "templates":
        command_name = f"templates {args.template_cmd}"
        project = _require_catalog(parser, root, cfg, command_name)
        env_file = _require_env_file(parser, project, args.env_file, cfg, command_name)
        if args.template_cmd == "list":
            if not env_file.category_templates:
                print("No category templates.")
            for t in env_file.category_templates:
                print(f"{t.id}  {t.name} ({len(t.keys)} keys): {', '.join(t.keys)}")
            return
        try:
            if args.template_cmd == "add":
                project, template = upsert_template(
                    project,
                    env_file,
                    CategoryTemplate(
                        id="",
                        name=args.name,
                        keys=tuple(args.key or ()),
                        description=args.description,
                    ),
                )
                message = f"Saved template {template.id} ({template.name})."
            elif args.template_cmd == "copy":
                project, template = copy_template(project, env_file, args.template_id)
                message = f"Copied template to {template.id} ({template.name})."
            else:
                project = remove_template(project, env_file, args.template_id)
                message = f"Removed template {args.template_id}."
        except ValueError as e:
            parser.error(f"{command_name}: {e}")
        _save_catalog(parser, root, project, cfg, command_name)
        print(message)

    elif args.cmd == "preview":
        project = _require_catalog(parser, root, cfg, "preview")
        env_file = _require_env_file(parser, project, args.env_file, cfg, "preview")
        selection = _build_selection(parser, env_file, args.select, "preview")
        try:
            groups = resolve_selected_groups(selection, env_file.groups)
            text = _read_or_empty(
                _env_path(parser, root, env_file, "preview"),
                encoding_errors=cfg.encoding_errors,
            )
        except ValueError as e:
            parser.error(f"preview: {e}")
        print(format_preview_table(build_merge_preview(text, groups)))

    elif args.cmd == "merge":
        project = _require_catalog(parser, root, cfg, "merge")
        env_file = _require_env_file(parser, project, args.env_file, cfg, "merge")
        selection = _build_selection(parser, env_file, args.select, "merge")
        encoding_errors = args.encoding_errors or cfg.encoding_errors
        env_path = _env_path(parser, root, env_file, "merge")
        try:
            outcome = save_merged_env_file(
                env_path,
                selection,
                env_file.groups,
                read_text=lambda p: _read_or_empty(p, encoding_errors=encoding_errors),
                write_text=write_env_text,
                dry_run=bool(args.dry_run),
            )
        except ValueError as e:
            parser.error(f"merge: {e}")
        if args.diff and outcome.changed:
            sys.stdout.write(
                unified_diff(outcome.old_text, outcome.new_text, env_file.path)
            )
        names = ", ".join(g.name for g in outcome.groups)
        if not outcome.changed:
            print(f"{env_file.path} already up to date ({names}).")
        elif args.dry_run:
            print(f"Dry run OK: {env_file.path} would change ({names}).")
        else:
            _save_catalog(parser, root, project, cfg, "merge")
            print(f"Merged {names} into {env_file.path}.")

    elif args.cmd == "doctor":
        _run_doctor(root)


if __name__ == "__main__":
    main()
