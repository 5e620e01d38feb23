import os

import pytest

from k8sdiff.core import K8sDiff, K8sDiffError, tree_subdir
from k8sdiff.models import CommandResult, ResolvedRevision


class FakeGitService:
    """Maps refs to prepared directory trees instead of cloning."""

    def __init__(self, trees, current_commit="head-sha", default_branch="main"):
        self.trees = trees
        self._current_commit = current_commit
        self._default_branch = default_branch
        self.materialize_calls = []

    def default_branch(self):
        return self._default_branch

    def current_commit(self):
        return self._current_commit

    def materialize(self, ref, target_dir, current_commit=None):
        self.materialize_calls.append((ref, target_dir, current_commit))
        if ref not in self.trees:
            raise K8sDiffError(f"Could not resolve git ref `{ref}`")
        return ResolvedRevision(ref=ref, commit_id=f"{ref}-sha", tree_path=str(self.trees[ref]))


class FakeCaptureRunner:
    def __init__(self, handler):
        self.handler = handler
        self.calls = []

    def capture(self, command, cwd=None):
        self.calls.append((command, cwd))
        return self.handler(command, cwd)


def read_outputs(path):
    outputs = {}
    lines = path.read_text(encoding="utf-8").split("\n")
    index = 0
    while index < len(lines):
        line = lines[index]
        if "<<" in line:
            name, delimiter = line.split("<<", 1)
            index += 1
            value = []
            while lines[index] != delimiter:
                value.append(lines[index])
                index += 1
            outputs[name] = "\n".join(value)
        index += 1
    return outputs


@pytest.fixture
def environ(tmp_path):
    return {"GITHUB_OUTPUT": str(tmp_path / "github_output"), "PATH": os.environ.get("PATH", "")}


def build_differ(tmp_path, environ, inputs, trees, diff_result=None, current_commit="head-sha"):
    differ = K8sDiff(inputs=inputs, workspace_root=str(tmp_path / "work"), environ=environ)
    differ.git_service = FakeGitService(trees, current_commit=current_commit)
    differ.tool_service.ensure_tools = lambda tool: None

    seen = {}

    def fake_run_diff(base_file, head_file):
        with open(base_file, encoding="utf-8") as base, open(head_file, encoding="utf-8") as head:
            seen["base"] = base.read()
            seen["head"] = head.read()
        return diff_result or CommandResult(stdout="", stderr="", exit_code=0)

    differ.diff_service.run_diff = fake_run_diff
    return differ, seen


def make_tree(root, files):
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    root.mkdir(parents=True, exist_ok=True)
    return root


def test_identical_yaml_trees_produce_identical_inputs_and_no_error(tmp_path, environ):
    manifest = "apiVersion: v1\nkind: ConfigMap\nmetadata:\n  name: app\n"
    trees = {
        "main": make_tree(tmp_path / "base", {"k8s/app.yaml": manifest}),
        "head-sha": make_tree(tmp_path / "head", {"k8s/app.yaml": manifest}),
    }
    differ, seen = build_differ(
        tmp_path,
        environ,
        {"tool": "yaml", "base-ref": "main", "working-dir": "k8s"},
        trees,
    )

    assert differ.run() == 0

    assert seen["base"] == seen["head"] == f"---\n{manifest}\n"
    outputs = read_outputs(tmp_path / "github_output")
    assert outputs["error"] == "false"
    assert outputs["stderr"] == ""


def test_missing_base_working_dir_is_treated_as_empty(tmp_path, environ):
    trees = {
        "main": make_tree(tmp_path / "base", {"README.md": "no chart yet"}),
        "head-sha": make_tree(tmp_path / "head", {"chart/Chart.yaml": "name: app"}),
    }
    differ, seen = build_differ(
        tmp_path,
        environ,
        {"tool": "helm", "working-dir": "chart"},
        trees,
        diff_result=CommandResult(stdout="+ kind: Service\n", stderr="", exit_code=0),
    )

    def render(command, cwd):
        if command == "helm template .":
            return CommandResult(stdout="kind: Service\n", stderr="", exit_code=0)
        return CommandResult(stdout="", stderr="", exit_code=0)

    runner = FakeCaptureRunner(render)
    differ.manifest_service.command_runner = runner

    assert differ.run() == 0

    assert seen["base"] == ""
    assert seen["head"] == "kind: Service\n"
    head_chart = os.path.join(str(tmp_path / "head"), "chart")
    assert runner.calls == [("helm dependency update", head_chart), ("helm template .", head_chart)]
    outputs = read_outputs(tmp_path / "github_output")
    assert outputs["diff-output"] == "+ kind: Service\n"
    assert outputs["error"] == "false"


def test_diff_engine_failure_is_reported_not_raised(tmp_path, environ):
    trees = {
        "main": make_tree(tmp_path / "base", {"app.yaml": "kind: Pod"}),
        "head-sha": make_tree(tmp_path / "head", {"app.yaml": "kind: Pod"}),
    }
    differ, _seen = build_differ(
        tmp_path,
        environ,
        {},
        trees,
        diff_result=CommandResult(stdout="", stderr="parse error", exit_code=2),
    )

    assert differ.run() == 0

    outputs = read_outputs(tmp_path / "github_output")
    assert "Yamldiff error: parse error" in outputs["stderr"]
    assert outputs["error"] == "true"


def test_failing_base_render_does_not_stop_head_side(tmp_path, environ):
    trees = {
        "main": make_tree(tmp_path / "base", {"overlay/kustomization.yaml": "resources: [missing.yaml]"}),
        "head-sha": make_tree(tmp_path / "head", {"overlay/kustomization.yaml": "resources: []"}),
    }
    differ, seen = build_differ(tmp_path, environ, {"tool": "kustomize", "working-dir": "overlay"}, trees)

    def render(command, cwd):
        if cwd.startswith(str(tmp_path / "base")):
            return CommandResult(stdout="", stderr="missing.yaml: no such file", exit_code=1)
        return CommandResult(stdout="kind: List\n", stderr="", exit_code=0)

    differ.manifest_service.command_runner = FakeCaptureRunner(render)

    assert differ.run() == 0

    assert seen["head"] == "kind: List\n"
    outputs = read_outputs(tmp_path / "github_output")
    assert outputs["stderr"] == "Base ref error: missing.yaml: no such file\n"
    assert outputs["error"] == "true"


def test_unresolvable_ref_fails_without_setting_outputs(tmp_path, environ):
    differ, _seen = build_differ(tmp_path, environ, {"base-ref": "ghost"}, trees={})

    assert differ.run() == 1

    assert not (tmp_path / "github_output").exists()


def test_head_side_passes_current_commit_and_base_side_does_not(tmp_path, environ):
    trees = {
        "main": make_tree(tmp_path / "base", {"app.yaml": "kind: Pod"}),
        "head-sha": make_tree(tmp_path / "head", {"app.yaml": "kind: Pod"}),
    }
    differ, _seen = build_differ(tmp_path, environ, {}, trees)

    assert differ.run() == 0

    base_call, head_call = differ.git_service.materialize_calls
    assert base_call == ("main", differ.base_repo_dir, None)
    assert head_call == ("head-sha", differ.head_repo_dir, "head-sha")


def test_provisioning_failure_is_fatal(tmp_path, environ):
    differ, _seen = build_differ(tmp_path, environ, {"tool": "helm"}, trees={})

    def fail(_tool):
        raise K8sDiffError("Could not install helm v3.14.0 for linux-amd64.")

    differ.tool_service.ensure_tools = fail

    assert differ.run() == 1
    assert differ.git_service.materialize_calls == []


def test_fixed_layout_lives_under_workspace_root(tmp_path, environ):
    differ = K8sDiff(inputs={}, workspace_root=str(tmp_path), environ=environ)

    assert differ.base_repo_dir == str(tmp_path / "base-ref-repo")
    assert differ.head_repo_dir == str(tmp_path / "head-ref-repo")
    assert differ.base_file == str(tmp_path / "base-ref.yaml")
    assert differ.head_file == str(tmp_path / "head-ref.yaml")


def test_invalid_pinned_version_is_rejected():
    with pytest.raises(K8sDiffError, match="Invalid helm version"):
        K8sDiff(inputs={}, helm_version="not-a-version", environ={})


def test_absolute_working_dir_is_resolved_inside_each_tree(tmp_path, environ):
    trees = {
        "main": make_tree(tmp_path / "base", {"k8s/app.yaml": "kind: Pod"}),
        "head-sha": make_tree(tmp_path / "head", {"k8s/app.yaml": "kind: Service"}),
    }
    differ, seen = build_differ(tmp_path, environ, {"working-dir": "/k8s"}, trees)

    assert differ.run() == 0

    assert seen["base"] == "---\nkind: Pod\n"
    assert seen["head"] == "---\nkind: Service\n"


def test_tree_subdir_keeps_paths_inside_tree(tmp_path):
    tree = str(tmp_path / "tree")

    assert tree_subdir(tree, "/k8s") == os.path.join(tree, "k8s")
    assert tree_subdir(tree, "charts/app") == os.path.join(tree, "charts/app")
    assert tree_subdir(tree, "/") == os.path.join(tree, ".")
