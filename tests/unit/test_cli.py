"""Tests for the command line front end."""

import json

import pytest

import visualize

FIB_SOURCE = """\
function fib(n) {
  if (n <= 1) return n;
  return fib(n - 1) + fib(n - 2);
}
console.log(fib(5));
"""


@pytest.fixture
def program(tmp_path):
    def write(source):
        path = tmp_path / "program.js"
        path.write_text(source, encoding="utf-8")
        return str(path)

    return write


class TestCli:
    def test_run(self, program, capsys):
        assert visualize.main([program(FIB_SOURCE), "--speed", "1000000"]) == 0
        out = capsys.readouterr().out
        assert "console.log: 5" in out
        assert "(completed: 32 steps" in out

    def test_verbose_prints_steps(self, program, capsys):
        assert visualize.main([program("let a = 1;\na = 2;\n"), "-v", "--speed", "1000000"]) == 0
        out = capsys.readouterr().out
        assert "[step 2] line 2  <main>  a=1" in out

    def test_analyze(self, program, capsys):
        assert visualize.main([program(FIB_SOURCE), "--analyze"]) == 0
        report = json.loads(capsys.readouterr().out)
        assert report["functions"][0]["name"] == "fib"

    def test_instrument_with_strategy(self, program, capsys):
        assert visualize.main([program(FIB_SOURCE), "--instrument", "--strategy", "synthesis"]) == 0
        assert capsys.readouterr().out.startswith("__step(0, 1);\n")

    def test_runtime_error_exit_code(self, program, capsys):
        assert visualize.main([program("null.x;\n"), "--speed", "1000000"]) == 1
        captured = capsys.readouterr()
        assert "error: TypeError" in captured.err
        assert "(failed:" in captured.out

    def test_syntax_error(self, program, capsys):
        assert visualize.main([program("let = ;\n"), "--analyze"]) == 1
        assert capsys.readouterr().err.startswith("SyntaxError:")

    def test_max_steps(self, program, capsys):
        source = "while (true) {\n  let a = 1;\n}\n"
        assert visualize.main([program(source), "-n", "5", "--speed", "1000000"]) == 0
        assert "(stopped: 5 steps" in capsys.readouterr().out

    @pytest.mark.parametrize("speed", ["0", "-2", "nan", "fast"])
    def test_rejects_bad_speed(self, program, capsys, speed):
        with pytest.raises(SystemExit) as exc_info:
            visualize.main([program(FIB_SOURCE), "--speed", speed])
        assert exc_info.value.code == 2
        assert "--speed" in capsys.readouterr().err
