# db_cli.py - SheetKeeper DB CLI
import os, sys, json, argparse, datetime
from typing import List

# Ensure local package import works when running directly
sys.path.insert(0, os.path.abspath("."))

# Make sure dev bootstrap doesn't fight migrations
os.environ.setdefault("AUTO_CREATE_TABLES", "0")

from sheetkeeper import create_app
from sheetkeeper.errors import SheetError
from sheetkeeper.models import Account, Character, Item, ItemProperty, Skill, Spell
from sheetkeeper.services import accounts as account_svc
from sheetkeeper.services import associations, catalog, characters as character_svc, items as item_svc


def _fmt_dt(dt):
    if not dt: return None
    if isinstance(dt, (datetime.datetime, datetime.date)):
        return dt.isoformat()
    return str(dt)

def print_rows(rows: List[tuple], headers: List[str]) -> None:
    if not rows:
        print("(no rows)")
        return
    widths = [len(h) for h in headers]
    for r in rows:
        for i, v in enumerate(r):
            widths[i] = max(widths[i], len("" if v is None else str(v)))
    line = " | ".join(h.ljust(widths[i]) for i,h in enumerate(headers))
    print(line)
    print("-+-".join("-"*w for w in widths))
    for r in rows:
        print(" | ".join(("" if v is None else str(v)).ljust(widths[i]) for i,v in enumerate(r)))

# --------------------
# Commands
# --------------------

def cmd_accounts(args):
    q = Account.query
    if args.username:
        q = q.filter(Account.username.like(f"%{args.username}%"))
    rows = [
        (a.id, a.username, "yes" if a.is_admin else "no", len(a.characters),
         _fmt_dt(a.created_at), _fmt_dt(a.last_login_at))
        for a in q.order_by(Account.id.asc()).all()
    ]
    print_rows(rows, ["id","username","admin","#chars","created_at","last_login"])

def cmd_characters(args):
    q = Character.query
    if args.username:
        a = Account.query.filter_by(username=args.username).first()
        if not a:
            print("No such account.")
            return
        q = q.filter(Character.account_id == a.id)
    rows = [
        (c.id, c.name, c.account.username, c.character_class, c.level,
         len(c.items), len(c.skills), len(c.spells), _fmt_dt(c.created_at))
        for c in q.order_by(Character.id.asc()).all()
    ]
    print_rows(rows, ["id","name","owner","class","lvl","#items","#skills","#spells","created_at"])

def cmd_create_admin(args):
    acct, created = account_svc.ensure_admin_account(args.username, args.password)
    print(json.dumps({"ok": True, "username": acct.username, "created": created, "is_admin": acct.is_admin}, indent=2))

def cmd_delete_character(args):
    removed = character_svc.delete_character(args.id)
    print(json.dumps({"ok": True, "character_id": args.id, "removed": removed}, indent=2))

def cmd_resync_item(args):
    counts = associations.resync_item_properties(args.id)
    print(json.dumps({"ok": True, "item_id": args.id, **counts}, indent=2))

def cmd_seed_catalog(args):
    """Create catalog entries from a JSON file; entries whose name already exists are left alone."""
    path = args.file
    if not os.path.exists(path):
        print(f"Seed file not found: {path}")
        return
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    created = {"item_properties": 0, "spells": 0, "skills": 0, "items": 0}
    skipped = 0

    props_by_name = {p.name: p for p in ItemProperty.query.all()}
    for entry in payload.get("item_properties") or []:
        if entry["name"] in props_by_name:
            skipped += 1
            continue
        props_by_name[entry["name"]] = catalog.create_item_property(entry)
        created["item_properties"] += 1

    for key, model, create in (
        ("spells", Spell, catalog.create_spell),
        ("skills", Skill, catalog.create_skill),
    ):
        existing = {e.name for e in model.query.all()}
        for entry in payload.get(key) or []:
            if entry["name"] in existing:
                skipped += 1
                continue
            create(entry)
            existing.add(entry["name"])
            created[key] += 1

    existing = {i.name for i in Item.query.all()}
    for entry in payload.get("items") or []:
        if entry["name"] in existing:
            skipped += 1
            continue
        entry = dict(entry)
        names = entry.pop("properties", None) or []
        entry["property_ids"] = [props_by_name[n].id for n in names if n in props_by_name]
        item_svc.create_item(entry)
        existing.add(entry["name"])
        created["items"] += 1

    print(json.dumps({"ok": True, "created": created, "skipped": skipped}, indent=2))

def build_parser():
    p = argparse.ArgumentParser(description="SheetKeeper DB CLI")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("accounts", help="List accounts")
    s.add_argument("--username", help="Filter by username contains")
    s.set_defaults(func=cmd_accounts)

    s = sub.add_parser("characters", help="List characters")
    s.add_argument("--username", help="Limit to an account's characters")
    s.set_defaults(func=cmd_characters)

    s = sub.add_parser("create-admin", help="Create the administrator account if missing")
    s.add_argument("--username", default=os.environ.get("ADMIN_USERNAME", "DM"))
    s.add_argument("--password", default=os.environ.get("ADMIN_PASSWORD", "DM"))
    s.set_defaults(func=cmd_create_admin)

    s = sub.add_parser("seed-catalog", help="Seed spells, skills, item properties and items")
    s.add_argument("--file", default="seeds/catalog_seed.json")
    s.set_defaults(func=cmd_seed_catalog)

    s = sub.add_parser("delete-character", help="Delete a character and its instance rows")
    s.add_argument("--id", type=int, required=True)
    s.set_defaults(func=cmd_delete_character)

    s = sub.add_parser("resync-item", help="Rebuild property instances of every copy of an item")
    s.add_argument("--id", type=int, required=True)
    s.set_defaults(func=cmd_resync_item)

    return p

def main(argv=None):
    args = build_parser().parse_args(argv)
    app = create_app()
    with app.app_context():
        try:
            args.func(args)
        except SheetError as e:
            print(json.dumps({"ok": False, "code": e.code, "error": e.message}, indent=2))
            return 1
    return 0

if __name__ == "__main__":
    sys.exit(main())
