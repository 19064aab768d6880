import json
import os
import subprocess
import sys
from pathlib import Path

import pytest

from proc_canonicalize import paths
from proc_canonicalize.errors import CanonicalizeError
from proc_canonicalize.paths import canonicalize, detect, resolve
from proc_canonicalize.resolver import ResolutionStatus
from proc_canonicalize.scanner import OutcomeKind

linux_only = pytest.mark.skipif(
    not sys.platform.startswith("linux"), reason="/proc namespaces are Linux-only"
)


def _make_chain(directory, length):
    target = directory / "target"
    target.mkdir()
    previous = "target"
    for index in range(length - 1, -1, -1):
        name = f"link{index}"
        os.symlink(previous, directory / name)
        previous = name
    return directory / "link0", target


def test_canonicalize_ordinary_path_matches_realpath(tmp_path):
    target = tmp_path / "notes"
    target.mkdir()
    link = tmp_path / "link"
    os.symlink(target, link)

    for path in (tmp_path, target, link, tmp_path / "notes" / ".." / "link"):
        assert canonicalize(path) == Path(os.path.realpath(path, strict=True))


def test_canonicalize_relative_path(tmp_path, monkeypatch):
    (tmp_path / "docs").mkdir()
    monkeypatch.chdir(tmp_path)

    assert canonicalize("docs") == Path(os.path.realpath(tmp_path / "docs"))


def test_canonicalize_accepts_bytes(tmp_path):
    assert canonicalize(os.fsencode(tmp_path)) == Path(os.path.realpath(tmp_path))


def test_canonicalize_empty_path_is_not_found():
    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize("")

    assert excinfo.value.code == "NOT_FOUND"


def test_canonicalize_rejects_null_bytes():
    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize("/tmp/\x00evil")

    assert excinfo.value.code == "INVALID_PATH"


def test_canonicalize_rejects_non_path_input():
    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize(42)

    assert excinfo.value.code == "INVALID_TYPE"


def test_canonicalize_missing_file_is_not_found(tmp_path):
    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize(tmp_path / "missing.txt")

    assert excinfo.value.code == "NOT_FOUND"
    assert excinfo.value.stage == "standard"


def test_non_linux_uses_standard_canonicalizer(tmp_path, monkeypatch):
    monkeypatch.setattr(paths, "_IS_LINUX", False)

    result = resolve("/proc/self/root")

    assert result.status is ResolutionStatus.STANDARD
    assert result.path == Path(os.path.realpath("/proc/self/root", strict=True))
    assert detect("/proc/self/root").kind is OutcomeKind.NO_MAGIC


def test_non_linux_applies_windows_simplification_when_enabled(monkeypatch):
    monkeypatch.setattr(paths, "_IS_LINUX", False)
    monkeypatch.setattr(
        "os.path.realpath", lambda path, strict=False: "\\\\?\\C:\\Users\\dev"
    )

    assert str(canonicalize("C:\\Users\\dev", simplify_windows_paths=True)) == (
        "C:\\Users\\dev"
    )
    assert str(canonicalize("C:\\Users\\dev")) == "\\\\?\\C:\\Users\\dev"


@linux_only
@pytest.mark.parametrize(
    "path",
    [
        "/proc/self/root",
        "/proc/self/cwd",
        f"/proc/{os.getpid()}/root",
        f"/proc/{os.getpid()}/cwd",
    ],
)
def test_bare_boundary_is_preserved(path):
    assert canonicalize(path) == Path(path)


@linux_only
def test_std_collapses_root_but_canonicalize_does_not():
    assert os.path.realpath("/proc/self/root", strict=True) == "/"
    assert canonicalize("/proc/self/root") == Path("/proc/self/root")


@linux_only
def test_thread_self_boundaries_are_preserved():
    if not os.path.exists("/proc/thread-self"):
        pytest.skip("/proc/thread-self is unavailable")

    assert canonicalize("/proc/thread-self/root") == Path("/proc/thread-self/root")
    assert canonicalize("/proc/thread-self/cwd") == Path("/proc/thread-self/cwd")


@linux_only
@pytest.mark.parametrize("kind", ["root", "cwd"])
def test_task_boundary_is_preserved(kind):
    tid = sorted(os.listdir("/proc/self/task"))[0]
    path = f"/proc/{os.getpid()}/task/{tid}/{kind}"

    assert canonicalize(path) == Path(path)


@linux_only
def test_root_subpath_keeps_prefix():
    result = resolve("/proc/self/root/etc")

    assert result.status is ResolutionStatus.PRESERVED
    assert result.path == Path("/proc/self/root/etc")


@linux_only
def test_root_dot_components_are_normalized():
    assert canonicalize("/proc/self/root/./etc") == Path("/proc/self/root/etc")
    assert canonicalize("/proc/self/root/tmp/../etc") == Path("/proc/self/root/etc")
    assert canonicalize("//proc//self//root") == Path("/proc/self/root")
    assert canonicalize("/proc/self/root/") == Path("/proc/self/root")


@linux_only
def test_cwd_file_passes_through_without_duplication(tmp_path, monkeypatch):
    (tmp_path / "file.txt").write_text("data", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert canonicalize("/proc/self/cwd/file.txt") == Path("/proc/self/cwd/file.txt")


@linux_only
def test_cwd_nested_subpath_is_preserved(tmp_path, monkeypatch):
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    (nested / "deep.txt").write_text("data", encoding="utf-8")
    monkeypatch.chdir(tmp_path)

    assert canonicalize("/proc/self/cwd/a/b/deep.txt") == Path(
        "/proc/self/cwd/a/b/deep.txt"
    )
    assert canonicalize("/proc/self/cwd/a/./b/../b") == Path("/proc/self/cwd/a/b")


@linux_only
def test_symlink_inside_cwd_is_resolved_within_namespace(tmp_path, monkeypatch):
    (tmp_path / "real.txt").write_text("data", encoding="utf-8")
    os.symlink("real.txt", tmp_path / "alias.txt")
    monkeypatch.chdir(tmp_path)

    assert canonicalize("/proc/self/cwd/alias.txt") == Path("/proc/self/cwd/real.txt")


@linux_only
def test_cwd_parent_escapes_to_host_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    result = resolve("/proc/self/cwd/..")

    assert result.status is ResolutionStatus.ESCAPED
    assert result.path == Path(os.path.realpath(tmp_path.parent))
    assert canonicalize("/proc/self/cwd/..") == result.path


@linux_only
def test_root_parent_stays_inside():
    result = resolve("/proc/self/root/..")

    assert result.status is ResolutionStatus.PRESERVED
    assert result.path == Path("/proc/self/root")
    assert canonicalize("/proc/self/root/../../../../etc") == Path("/proc/self/root/etc")


@linux_only
def test_symlink_inside_cwd_pointing_outside_escapes(tmp_path, monkeypatch):
    workdir = tmp_path / "work"
    workdir.mkdir()
    outside = tmp_path / "outside.txt"
    outside.write_text("data", encoding="utf-8")
    os.symlink(outside, workdir / "link")
    monkeypatch.chdir(workdir)

    result = resolve("/proc/self/cwd/link")

    assert result.escaped
    assert result.path == Path(os.path.realpath(outside))


@linux_only
@pytest.mark.parametrize("kind", ["root", "cwd"])
def test_symlink_to_boundary_is_preserved(tmp_path, kind):
    link = tmp_path / "link"
    os.symlink(f"/proc/self/{kind}", link)

    assert canonicalize(link) == Path(f"/proc/self/{kind}")


@linux_only
def test_symlink_to_root_then_subpath(tmp_path):
    link = tmp_path / "container"
    os.symlink("/proc/self/root", link)

    result = resolve(link / "etc")

    assert result.status is ResolutionStatus.PRESERVED
    assert result.path == Path("/proc/self/root/etc")


@linux_only
def test_symlink_to_cwd_then_subpath(tmp_path, monkeypatch):
    workdir = tmp_path / "work"
    (workdir / "sub").mkdir(parents=True)
    (workdir / "sub" / "file.txt").write_text("data", encoding="utf-8")
    link = tmp_path / "cwd-link"
    os.symlink("/proc/self/cwd", link)
    monkeypatch.chdir(workdir)

    assert canonicalize(link / "sub" / "file.txt") == Path(
        "/proc/self/cwd/sub/file.txt"
    )


@linux_only
@pytest.mark.parametrize(("kind", "child"), [("root", "etc"), ("cwd", "sub")])
def test_relative_symlink_to_boundary_is_detected(
    tmp_path, monkeypatch, kind, child
):
    workdir = tmp_path / "work"
    (workdir / "sub").mkdir(parents=True)
    monkeypatch.chdir(workdir)
    nested = tmp_path / "dir"
    nested.mkdir()
    link = nested / "link"
    os.symlink(os.path.relpath(f"/proc/self/{kind}", nested), link)

    assert canonicalize(link / child) == Path(f"/proc/self/{kind}/{child}")


@linux_only
def test_relative_symlink_through_proc_link(tmp_path):
    (tmp_path / "dir").mkdir()
    os.symlink("/proc", tmp_path / "proc_link")
    os.symlink("../proc_link/self/root", tmp_path / "dir" / "link")

    assert canonicalize(tmp_path / "dir" / "link") == Path("/proc/self/root")


@linux_only
def test_symlink_to_proc_parent(tmp_path):
    os.symlink("/proc", tmp_path / "myproc")

    assert canonicalize(tmp_path / "myproc" / "self" / "root") == Path(
        "/proc/self/root"
    )


@linux_only
@pytest.mark.parametrize(("kind", "child"), [("root", "etc"), ("cwd", "sub")])
def test_parent_after_symlink_is_not_normalized_away(
    tmp_path, monkeypatch, kind, child
):
    workdir = tmp_path / "work"
    (workdir / "sub").mkdir(parents=True)
    monkeypatch.chdir(workdir)
    magic = tmp_path / "magic"
    os.symlink(f"/proc/self/{kind}", magic)
    innocent = tmp_path / "innocent"
    os.symlink(magic / child, innocent)

    assert canonicalize(str(innocent) + "/..") == Path(f"/proc/self/{kind}")


@linux_only
@pytest.mark.parametrize(("kind", "child"), [("root", "etc"), ("cwd", "sub")])
def test_symlink_to_deep_boundary_path_then_parent(
    tmp_path, monkeypatch, kind, child
):
    workdir = tmp_path / "work"
    (workdir / "sub").mkdir(parents=True)
    monkeypatch.chdir(workdir)
    dir_link = tmp_path / "dir_link"
    os.symlink(f"/proc/self/{kind}/{child}", dir_link)

    assert canonicalize(dir_link) == Path(f"/proc/self/{kind}/{child}")
    assert canonicalize(str(dir_link) + "/..") == Path(f"/proc/self/{kind}")


@linux_only
def test_symlink_to_root_then_parent_stays_inside(tmp_path):
    link = tmp_path / "link"
    os.symlink("/proc/self/root", link)

    result = resolve(str(link) + "/..")

    assert result.status is ResolutionStatus.PRESERVED
    assert result.path == Path("/proc/self/root")


@linux_only
def test_symlink_to_cwd_then_parent_escapes(tmp_path, monkeypatch):
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    link = tmp_path / "link"
    os.symlink("/proc/self/cwd", link)

    result = resolve(str(link) + "/..")

    assert result.status is ResolutionStatus.ESCAPED
    assert result.path == Path(os.path.realpath(tmp_path))


@linux_only
@pytest.mark.parametrize("kind", ["root", "cwd"])
def test_chained_symlinks_to_boundary(tmp_path, kind):
    backup = tmp_path / "backup"
    storage = tmp_path / "storage"
    data = tmp_path / "data"
    os.symlink(f"/proc/self/{kind}", backup)
    os.symlink(backup, storage)
    os.symlink(storage, data)

    assert canonicalize(data) == Path(f"/proc/self/{kind}")


@linux_only
@pytest.mark.parametrize("kind", ["root", "cwd"])
def test_symlink_to_explicit_pid_boundary(tmp_path, kind):
    target = f"/proc/{os.getpid()}/{kind}"
    os.symlink(target, tmp_path / "link")

    assert canonicalize(tmp_path / "link") == Path(target)


@linux_only
def test_lookalike_relative_proc_tree_is_ordinary(tmp_path):
    (tmp_path / "proc" / "self" / "root").mkdir(parents=True)
    os.symlink("proc/self/root", tmp_path / "link")

    result = canonicalize(tmp_path / "link")

    assert result == Path(os.path.realpath(tmp_path / "proc" / "self" / "root"))


@linux_only
def test_ordinary_escaping_symlink_matches_realpath(tmp_path):
    subdir = tmp_path / "subdir"
    subdir.mkdir()
    escape = subdir / "escape"
    os.symlink("../../../../../../etc", escape)

    assert canonicalize(escape) == Path(os.path.realpath(escape, strict=True))


@linux_only
def test_chain_below_limit_resolves(tmp_path):
    link, target = _make_chain(tmp_path, 39)

    assert canonicalize(link) == Path(os.path.realpath(target))


@linux_only
def test_chain_over_limit_fails(tmp_path):
    link, _target = _make_chain(tmp_path, 41)

    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize(link)

    assert excinfo.value.code == "TOO_MANY_SYMLINKS"


@linux_only
def test_symlink_loop_fails_instead_of_hanging(tmp_path):
    os.symlink(tmp_path / "b", tmp_path / "a")
    os.symlink(tmp_path / "a", tmp_path / "b")

    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize(tmp_path / "a")

    assert excinfo.value.code == "TOO_MANY_SYMLINKS"


@linux_only
@pytest.mark.parametrize("kind", ["root", "cwd"])
def test_nonexistent_pid_is_not_found(kind):
    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize(f"/proc/{2**31 - 2}/{kind}")

    assert excinfo.value.code == "NOT_FOUND"
    assert excinfo.value.stage == "namespace_prefix"


@linux_only
def test_unrepresentable_pid_falls_through_to_not_found():
    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize("/proc/4294967295/root")

    assert excinfo.value.code == "NOT_FOUND"
    assert excinfo.value.stage == "standard"


@linux_only
def test_nonexistent_file_under_root_is_not_found():
    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize("/proc/self/root/this_file_does_not_exist_12345")

    assert excinfo.value.code == "NOT_FOUND"


@linux_only
@pytest.mark.parametrize("kind", ["root", "cwd"])
def test_foreign_process_boundary_is_permission_denied(kind):
    if os.geteuid() == 0:
        pytest.skip("root can read every namespace")
    try:
        owner = os.stat("/proc/1").st_uid
    except OSError:
        pytest.skip("/proc/1 is not visible")
    if owner == os.geteuid():
        pytest.skip("pid 1 belongs to the current user")

    with pytest.raises(CanonicalizeError) as excinfo:
        canonicalize(f"/proc/1/{kind}")

    assert excinfo.value.code == "PERMISSION_DENIED"
    assert excinfo.value.stage == "namespace_prefix"


_UNPRIVILEGED_CHECK = """
import json
import os

import proc_canonicalize
from proc_canonicalize import CanonicalizeError

os.setgroups([])
os.setgid(65534)
os.setuid(65534)

results = {}
for path in json.loads(os.environ["CHECK_PATHS"]):
    try:
        results[path] = ["ok", str(proc_canonicalize.canonicalize(path))]
    except CanonicalizeError as exc:
        results[path] = [exc.code, exc.stage]
print(json.dumps(results))
"""


@linux_only
@pytest.mark.parametrize("kind", ["root", "cwd"])
def test_foreign_process_boundary_is_permission_denied_after_dropping_privileges(
    kind,
):
    if os.geteuid() != 0:
        pytest.skip("dropping privileges needs root")
    try:
        owner = os.stat("/proc/1").st_uid
    except OSError:
        pytest.skip("/proc/1 is not visible")
    if owner == 65534:
        pytest.skip("pid 1 belongs to the unprivileged user")

    checked = [f"/proc/1/{kind}", f"/proc/1/{kind}/x"]
    env = dict(os.environ)
    env["CHECK_PATHS"] = json.dumps(checked)
    project_root = str(Path(__file__).resolve().parents[1])
    env["PYTHONPATH"] = os.pathsep.join(
        filter(None, [project_root, env.get("PYTHONPATH")])
    )
    completed = subprocess.run(
        [sys.executable, "-c", _UNPRIVILEGED_CHECK],
        capture_output=True,
        text=True,
        cwd="/",
        env=env,
        check=True,
    )

    results = json.loads(completed.stdout)
    for path in checked:
        assert results[path] == ["PERMISSION_DENIED", "namespace_prefix"]


@linux_only
def test_other_proc_entries_resolve_normally():
    result = resolve("/proc/self/fd")

    assert result.status is ResolutionStatus.STANDARD
    assert result.path == Path(f"/proc/{os.getpid()}/fd")


@linux_only
def test_canonicalize_is_idempotent(tmp_path, monkeypatch):
    (tmp_path / "file.txt").write_text("data", encoding="utf-8")
    link = tmp_path / "link"
    os.symlink("/proc/self/root", link)
    monkeypatch.chdir(tmp_path)

    for path in (
        "/proc/self/root",
        "/proc/self/root/etc",
        "/proc/self/cwd",
        "/proc/self/cwd/file.txt",
        "/proc/self/cwd/..",
        str(link / "etc"),
        str(tmp_path),
    ):
        first = canonicalize(path)
        assert canonicalize(first) == first
