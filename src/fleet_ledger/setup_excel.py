"""Utility for initializing the fleet ledger seed workbook.

The module doubles as a console script (``ledger-setup``) and as a library
used by tests. It lays out every sheet the loader reads, with a bold header
row, and seeds the default administrator so a fresh session has someone to
attribute audit entries to.
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Mapping, Sequence
import sys

import openpyxl
from openpyxl.styles import Font

from . import log
from .constants import SHEET_COLUMNS, SheetName, UserRole
from .data_manager import CONFIG_FILE_NAME, load_settings, save_workbook


# Seeded into the Users sheet; UserID is taken from DefaultUserId.
DEFAULT_ADMIN: Mapping[str, object] = {
    "UserID": "u1",
    "Name": "John Smith",
    "Email": "john@opt.com",
    "Role": UserRole.ADMIN.value,
    "Status": "Active",
}


def create_master_workbook(
    destination: Path,
    *,
    default_user_id: str,
    sheet_columns: Mapping[str, Sequence[str]] = SHEET_COLUMNS,
    default_user_template: Mapping[str, object] = DEFAULT_ADMIN,
    overwrite: bool = False,
) -> Path:
    """Create an empty seed workbook at ``destination``.

    Args:
        destination (Path): Target ``.xlsx`` path.
        default_user_id (str): Identifier given to the seeded administrator.
        sheet_columns (Mapping[str, Sequence[str]]): Header layout per sheet.
        default_user_template (Mapping[str, object]): Values for the seeded
            user row, keyed by ``Users`` column name.
        overwrite (bool): Replace an existing file instead of refusing.

    Returns:
        Path: Resolved location of the written workbook.

    Raises:
        FileExistsError: If the target exists and ``overwrite`` is ``False``.
    """

    destination = Path(destination).expanduser().resolve()
    if destination.exists() and not overwrite:
        raise FileExistsError(f"Refusing to overwrite existing seed workbook: {destination}")

    workbook = openpyxl.Workbook()

    # Remove the default sheet openpyxl generates so we can create ours.
    if workbook.active and workbook.active.title == "Sheet":
        workbook.remove(workbook.active)

    bold_font = Font(bold=True)
    for sheet_name, columns in sheet_columns.items():
        worksheet = workbook.create_sheet(title=sheet_name)
        for column_index, column_name in enumerate(columns, start=1):
            cell = worksheet.cell(row=1, column=column_index)
            cell.value = column_name
            cell.font = bold_font

    users_sheet_name = SheetName.USERS.value
    if users_sheet_name in workbook.sheetnames:
        default_user = dict(default_user_template)
        default_user["UserID"] = default_user_id
        workbook[users_sheet_name].append(
            [default_user.get(column) for column in sheet_columns[users_sheet_name]]
        )

    output = save_workbook(workbook, destination)
    log.info("Created seed workbook at '%s' with %d sheets", output, len(sheet_columns))
    return output


def run_from_config(config_path: Path, *, overwrite: bool = False) -> Path:
    """Create the workbook named by ``DataFile`` in ``config_path``."""

    settings = load_settings(config_path)
    return create_master_workbook(
        settings.data_file,
        default_user_id=settings.default_user_id,
        overwrite=overwrite,
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Initialize the fleet ledger seed workbook")
    parser.add_argument(
        "--config",
        default=CONFIG_FILE_NAME,
        help="Path to configuration file (default: config.ini)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the target workbook if it already exists.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for ``ledger-setup``."""

    args = parse_args(argv)
    config_path = Path(args.config).expanduser().resolve()

    print("--- Fleet Ledger Setup ---")
    print(f"Using configuration: {config_path}")

    try:
        output_path = run_from_config(config_path, overwrite=args.force)
    except (FileNotFoundError, KeyError) as exc:
        print(f"\n[ERROR] {exc}")
        return 1
    except FileExistsError as exc:
        print(f"\n[ERROR] {exc}")
        print("Run with --force to overwrite the existing file if appropriate.")
        return 1
    except OSError as exc:
        print(f"\n[ERROR] Unable to write workbook: {exc}")
        return 1

    print(f"\n[SUCCESS] Created seed workbook at '{output_path}'.")
    return 0


if __name__ == "__main__":  # pragma: no cover - exercised via manual runs
    sys.exit(main())
