"""shell.py LocalExecutor 单元测试"""

from __future__ import annotations

import os
import sys

from pkgmgmt.utils.shell import CommandResult, LocalExecutor, get_executor, set_executor


class TestLocalExecutor:
    def test_success(self, tmp_path) -> None:
        r = LocalExecutor().execute([sys.executable, "-c", "print('hello')"], cwd=str(tmp_path))
        assert r.success
        assert "hello" in r.stdout

    def test_failure_returncode(self, tmp_path) -> None:
        r = LocalExecutor().execute([sys.executable, "-c", "import sys; sys.exit(3)"], cwd=str(tmp_path))
        assert r.returncode == 3
        assert not r.success

    def test_missing_binary_is_127(self, tmp_path) -> None:
        r = LocalExecutor().execute(["definitely-not-a-real-binary-xyz"], cwd=str(tmp_path))
        assert r.returncode == 127

    def test_env_passed(self, tmp_path) -> None:
        env = {**os.environ, "MY_TEST_VAR": "42"}
        r = LocalExecutor().execute(
            [sys.executable, "-c", "import os; print(os.environ['MY_TEST_VAR'])"],
            cwd=str(tmp_path), env=env,
        )
        assert r.stdout.strip() == "42"


class TestCommandResult:
    def test_output_lines(self) -> None:
        r = CommandResult(returncode=0, stdout="a\n\n b \n", stderr="c\n")
        assert r.output_lines() == ["a", " b ", "c"]


class TestDefaultExecutor:
    def test_replace(self) -> None:
        original = get_executor()
        fake = LocalExecutor()
        try:
            set_executor(fake)
            assert get_executor() is fake
        finally:
            set_executor(original)
