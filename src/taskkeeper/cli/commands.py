# src/taskkeeper/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
import re
import shlex
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import cast

from ..core.state import AppState
from ..tasks.task_api import edit_task, new_task
from ..tasks.task_models import Category, Priority, Task, TaskFilter, UnknownTaskError
from .bootstrap import ensure_profile, set_dark_mode

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, /list, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError:
            parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except Exception:
            nparams = 3

        if nparams >= 3:
            h3 = cast(CommandHandler3, handler)
            return h3(state, args, emit)

        h2 = cast(CommandHandler2, handler)
        return h2(state, args)

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- parsing helpers ----

_RELATIVE_RE = re.compile(r"^\+(\d+)([mhd])$")
_NONE_WORDS = {"none", "-", "clear", ""}


def parse_due(raw: str, now: float) -> float | None:
    """
    Parse a due value.

    Accepts ISO dates/times (local time), "today"/"tomorrow" (09:00),
    relative offsets like +30m, +2h, +1d, and none/clear.
    """
    value = raw.strip().lower()
    if value in _NONE_WORDS:
        return None

    m = _RELATIVE_RE.match(value)
    if m:
        amount = int(m.group(1))
        unit = {"m": 60, "h": 3600, "d": 86400}[m.group(2)]
        return now + amount * unit

    base = datetime.fromtimestamp(now)
    if value in ("today", "tomorrow"):
        day = base.date() + timedelta(days=1 if value == "tomorrow" else 0)
        return datetime(day.year, day.month, day.day, 9, 0).timestamp()

    try:
        return datetime.fromisoformat(raw.strip()).timestamp()
    except ValueError as e:
        raise ValueError(f"Cannot parse due date: {raw!r}") from e


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    words: list[str] = []
    opts: dict[str, str] = {}
    for a in args:
        key, sep, value = a.partition("=")
        if sep and key.lower() in ("due", "priority", "category", "notes", "title", "attach"):
            opts[key.lower()] = value
        else:
            words.append(a)
    return words, opts


def _fmt_ts(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M")


def _resolve(state: AppState, ref: str) -> Task:
    """
    Resolve a task reference: 1-based index into the current view,
    or a unique id prefix.
    """
    ref = ref.strip()
    if ref.isdigit():
        view = state.tasks.view(state.current_filter)
        idx = int(ref) - 1
        if 0 <= idx < len(view):
            return view[idx]

    matches = [t for t in state.tasks.tasks if t.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        raise UnknownTaskError(ref)
    raise ValueError(f"Ambiguous task reference: {ref}")


def format_task_line(pos: int, task: Task) -> str:
    mark = "x" if task.completed else " "
    due = f" due {_fmt_ts(task.due_at)}" if task.due_at is not None else ""
    cat = f" #{task.category.value}" if task.category else ""
    clip = f" +{len(task.attachments)} img" if task.attachments else ""
    return f"{pos:>2}. [{mark}] {task.title} ({task.priority.value}){due}{cat}{clip}  <{task.id[:8]}>"


def _with_task(state: AppState, args: list[str], usage: str) -> Task | str:
    if not args:
        return usage
    try:
        return _resolve(state, args[0])
    except UnknownTaskError:
        return f"No task matches {args[0]!r}."
    except ValueError as e:
        return str(e)


# ---- handlers ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <title words> [due=...] [priority=high] [category=work] [notes="..."] [attach=<blob>]
    """
    words, opts = _split_options(args)
    title = " ".join(words) or opts.get("title", "")
    try:
        due_at = parse_due(opts["due"], state.clock.now()) if "due" in opts else None
        task = new_task(
            title,
            notes=opts.get("notes"),
            due_at=due_at,
            priority=Priority(opts.get("priority", "medium").lower()),
            category=Category(opts["category"].lower()) if opts.get("category") else None,
            attachments=[opts["attach"]] if opts.get("attach") else (),
            clock=state.clock,
        )
    except ValueError as e:
        return f"Cannot add task: {e}"

    state.tasks.save_task(task)
    return f"Added: {task.title} <{task.id[:8]}>"


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit <ref> [title=...] [due=...|none] [priority=...] [category=...|none] [notes=...]
    """
    found = _with_task(state, args, "Usage: /edit <n|id> key=value ...")
    if isinstance(found, str):
        return found

    _, opts = _split_options(args[1:])
    if not opts:
        return "Nothing to change. Keys: title, due, priority, category, notes, attach."

    changes: dict[str, object] = {}
    try:
        if "title" in opts:
            changes["title"] = opts["title"]
        if "notes" in opts:
            changes["notes"] = None if opts["notes"].lower() in _NONE_WORDS else opts["notes"]
        if "due" in opts:
            changes["due_at"] = parse_due(opts["due"], state.clock.now())
        if "priority" in opts:
            changes["priority"] = Priority(opts["priority"].lower())
        if "category" in opts:
            raw = opts["category"].lower()
            changes["category"] = None if raw in _NONE_WORDS else Category(raw)
        if "attach" in opts:
            changes["attachments"] = (*found.attachments, opts["attach"])
        updated = edit_task(found, **changes)  # type: ignore[arg-type]
    except ValueError as e:
        return f"Cannot edit task: {e}"

    state.tasks.save_task(updated)
    return f"Updated: {updated.title}"


def cmd_list(state: AppState, args: list[str]) -> str:
    """
    /list                -> current filter
    /list all|today|upcoming|completed
    """
    if args:
        raw = args[0].lower()
        if raw not in {f.value for f in TaskFilter}:
            return "Usage: /list all|today|upcoming|completed"
        state.current_filter = TaskFilter(raw)

    view = state.tasks.view(state.current_filter)
    if not view:
        return f"No tasks ({state.current_filter.value})."
    lines = [f"Tasks ({state.current_filter.value}):"]
    lines.extend(format_task_line(i, t) for i, t in enumerate(view, start=1))
    return "\n".join(lines)


def cmd_show(state: AppState, args: list[str]) -> str:
    found = _with_task(state, args, "Usage: /show <n|id>")
    if isinstance(found, str):
        return found
    t = found
    return (
        f"{t.title}\n"
        f"  id: {t.id}\n"
        f"  priority: {t.priority.value}\n"
        f"  category: {t.category.value if t.category else '-'}\n"
        f"  due: {_fmt_ts(t.due_at)}\n"
        f"  notes: {t.notes or '-'}\n"
        f"  attachments: {len(t.attachments)}\n"
        f"  created: {_fmt_ts(t.created_at)}\n"
        f"  completed: {_fmt_ts(t.completed_at) if t.completed else 'no'}"
    )


def cmd_done(state: AppState, args: list[str]) -> str:
    found = _with_task(state, args, "Usage: /done <n|id>")
    if isinstance(found, str):
        return found
    updated = state.tasks.toggle_complete(found.id)
    return f"{'Completed' if updated.completed else 'Reopened'}: {updated.title}"


def cmd_focus(state: AppState, args: list[str]) -> str:
    """Focus session finished for a task: mark it completed."""
    found = _with_task(state, args, "Usage: /focus <n|id>")
    if isinstance(found, str):
        return found
    updated = state.tasks.complete_from_focus(found.id)
    return f"Focus session done. Completed: {updated.title}"


def cmd_rm(state: AppState, args: list[str]) -> str:
    found = _with_task(state, args, "Usage: /rm <n|id>")
    if isinstance(found, str):
        return found
    state.tasks.request_delete(found.id)
    return f"Delete '{found.title}'? Confirm with /yes or keep it with /no."


def cmd_yes(state: AppState, args: list[str]) -> str:
    removed = state.tasks.confirm_delete()
    if removed is None:
        return "Nothing to delete."
    window = state.tasks.undo_slot.window_seconds
    return f"Deleted: {removed.title}. Use /undo within {window:.0f}s to restore it."


def cmd_no(state: AppState, args: list[str]) -> str:
    if state.tasks.delete_candidate is None:
        return "Nothing to cancel."
    state.tasks.cancel_delete()
    return "Delete cancelled."


def cmd_undo(state: AppState, args: list[str]) -> str:
    restored = state.tasks.undo_delete()
    if restored is None:
        return "Nothing to undo."
    return f"Restored: {restored.title}"


def cmd_stats(state: AppState, args: list[str]) -> str:
    s = state.stats or state.tasks.stats()
    return (
        "Stats:\n"
        f"  Total: {s.total}\n"
        f"  Completed: {s.completed}\n"
        f"  Pending: {s.pending}\n"
        f"  Productivity: {s.percent}%"
    )


def cmd_reminders(state: AppState, args: list[str]) -> str:
    if not state.notifier.permission_granted:
        return "Notifications are disabled; no reminders are scheduled."
    pending = state.notifier.pending()
    if not pending:
        return "No pending reminders."
    lines = ["Pending reminders:"]
    for task_id, fire_at in sorted(pending.items(), key=lambda kv: kv[1]):
        task = state.tasks.find(task_id)
        title = task.title if task else task_id
        lines.append(f"  {_fmt_ts(fire_at)}  {title}")
    return "\n".join(lines)


def cmd_profile(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /profile         -> show profile
    /profile <name>  -> create or rename
    """
    if not args:
        if state.profile is None:
            return "No profile yet. Create one with /profile <your name>."
        return f"Profile: {state.profile.name} (since {_fmt_ts(state.profile.created_at)})"

    first_launch = state.profile is None
    try:
        profile = ensure_profile(state, " ".join(args))
    except ValueError as e:
        return f"Cannot save profile: {e}"

    if first_launch and emit:
        with contextlib.suppress(Exception):
            emit(f"Welcome, {profile.name}!")
    return f"Profile saved: {profile.name}"


def cmd_dark(state: AppState, args: list[str]) -> str:
    """
    /dark          -> show status
    /dark on|off   -> change preference
    """
    if not args:
        return f"Dark mode is currently {'ON' if state.dark_mode else 'OFF'}. Use /dark on or /dark off."

    arg = args[0].lower()
    logger.debug("Dark mode change requested: %s", arg)
    if arg in ("on", "1", "true", "yes"):
        set_dark_mode(state, True)
        return "Dark mode ON."
    if arg in ("off", "0", "false", "no"):
        set_dark_mode(state, False)
        return "Dark mode OFF."
    return "Usage: /dark on or /dark off."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "add",
    cmd_add,
    help_text='Add a task: /add <title> [due=2026-01-31T18:00|+2h|tomorrow] '
    '[priority=low|medium|high] [category=work|personal|study|shopping|other] [notes="..."].',
)
registry.register("edit", cmd_edit, help_text="Edit a task: /edit <n|id> key=value ...")
registry.register("list", cmd_list, help_text="List tasks: /list [all|today|upcoming|completed].", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show task details: /show <n|id>.")
registry.register("done", cmd_done, help_text="Toggle completion: /done <n|id>.")
registry.register("focus", cmd_focus, help_text="Finish a focus session for a task: /focus <n|id>.")
registry.register("rm", cmd_rm, help_text="Delete a task (asks for confirmation): /rm <n|id>.", aliases=["del"])
registry.register("yes", cmd_yes, help_text="Confirm a pending delete.")
registry.register("no", cmd_no, help_text="Cancel a pending delete.")
registry.register("undo", cmd_undo, help_text="Restore the last deleted task.")
registry.register("stats", cmd_stats, help_text="Show completion stats.")
registry.register("reminders", cmd_reminders, help_text="List pending reminders.")
registry.register("profile", cmd_profile, help_text="Show or set your profile: /profile [name].")
registry.register("dark", cmd_dark, help_text="Dark mode preference: /dark on | /dark off.")
