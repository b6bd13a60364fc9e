"""End-to-end tests for run_audit() and the command line."""

import pytest

from nestaudit.directory.base import ObjectNotFoundError
from nestaudit.integration.bridge import run_audit
from nestaudit.main import EXIT_ERROR, EXIT_NOT_FOUND, EXIT_OK, main


def _config(tmp_path, **output):
    return {
        "output": {"output_dir": str(tmp_path / "out"), **output},
        "verbose": False,
    }


# ---------------------------------------------------------------------------
# run_audit
# ---------------------------------------------------------------------------


class TestRunAudit:
    def test_members_writes_every_report(self, tmp_path, snapshot_files):
        result = run_audit("members", "Domain Admins", input_files=snapshot_files,
                           config=_config(tmp_path))

        assert [e.obj.name for e in result.closure.entries] == ["JDOE"]
        assert len(result.report_paths) == 3
        assert "John Doe" in result.text

    def test_include_inactive(self, tmp_path, snapshot_files):
        config = _config(tmp_path, generate_html=False, generate_csv=False, generate_json=False)
        config["traversal"] = {"include_inactive": True}

        result = run_audit("members", "Domain Admins", input_files=snapshot_files, config=config)

        assert len(result.closure.entries) == 2
        assert result.report_paths == []

    def test_memberof(self, tmp_path, snapshot_files):
        result = run_audit("memberof", "jdoe", input_files=snapshot_files,
                           config=_config(tmp_path), view="tree")

        assert [g.object_id for g in result.closure.groups] == ["S-1-5-21-1-512"]
        assert "└── DOMAIN ADMINS" in result.text

    def test_progress_callback(self, tmp_path, snapshot_files):
        messages = []

        run_audit("memberof", "jdoe", input_files=snapshot_files,
                  config=_config(tmp_path), progress_callback=messages.append)

        assert any(m.startswith("[+] JSON report saved") for m in messages)

    def test_unknown_root(self, tmp_path, snapshot_files):
        with pytest.raises(ObjectNotFoundError):
            run_audit("members", "nobody", input_files=snapshot_files, config=_config(tmp_path))

    @pytest.mark.parametrize("direction, kwargs", [
        ("sideways", {"input_files": ["x.json"]}),
        ("members", {}),
    ])
    def test_invalid_requests(self, tmp_path, direction, kwargs):
        with pytest.raises(ValueError):
            run_audit(direction, "G1", config=_config(tmp_path), **kwargs)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------


class TestMain:
    def test_members_summary(self, tmp_path, snapshot_files, capsys):
        code = main(["members", "Domain Admins", "--snapshot", *snapshot_files,
                     "-o", str(tmp_path / "out"), "--no-html"])

        out = capsys.readouterr().out
        assert code == EXIT_OK
        assert "Members of DOMAIN ADMINS" in out
        assert "John Doe" in out
        assert not list((tmp_path / "out").glob("*.html"))

    def test_not_found_exit_code(self, tmp_path, snapshot_files, capsys):
        code = main(["memberof", "nobody", "--snapshot", *snapshot_files,
                     "-o", str(tmp_path / "out")])

        assert code == EXIT_NOT_FOUND
        assert "nobody" in capsys.readouterr().err

    def test_missing_snapshot_exit_code(self, tmp_path):
        code = main(["members", "G1", "--snapshot", str(tmp_path / "absent.json"),
                     "-o", str(tmp_path / "out")])

        assert code == EXIT_ERROR

    def test_invalid_limit_exit_code(self, tmp_path, snapshot_files):
        code = main(["members", "Domain Admins", "--snapshot", *snapshot_files,
                     "--max-nodes", "0", "-o", str(tmp_path / "out")])

        assert code == EXIT_ERROR

    def test_source_is_required(self):
        with pytest.raises(SystemExit):
            main(["members", "Domain Admins"])
