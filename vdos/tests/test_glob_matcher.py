from vdos.glob_matcher import MATCHER_CACHE_SIZE, GlobMatcher, matches


def test_star_matches_any_run_case_insensitively() -> None:
    matcher = GlobMatcher.compile("*.EXE")
    assert matcher.test("snake.exe")
    assert matcher.test("SNAKE.EXE")
    assert matcher.test(".exe")
    assert not matcher.test("SNAKE.EXEX")
    assert not matcher.test("COMMAND.COM")


def test_question_mark_matches_exactly_one_character() -> None:
    assert matches("A.TXT", "?.TXT")
    assert not matches("AB.TXT", "?.TXT")
    assert not matches(".TXT", "?.TXT")


def test_dot_and_other_characters_are_literal() -> None:
    assert not matches("AXTXT", "A.TXT")
    assert matches("A+B.TXT", "a+b.txt")
    assert matches("[1].DAT", "[1].*")
    assert not matches("1.DAT", "[1].*")


def test_star_alone_matches_everything() -> None:
    matcher = GlobMatcher.compile("*")
    assert matcher.test("")
    assert matcher.test("AUTOEXEC.BAT")


def test_compile_is_cached() -> None:
    assert GlobMatcher.compile("*.TXT") is GlobMatcher.compile("*.TXT")


def test_compiled_matchers_are_bounded() -> None:
    for index in range(MATCHER_CACHE_SIZE + 50):
        GlobMatcher.compile(f"FILE{index}.*")
    info = GlobMatcher.cache_info()
    assert info.currsize <= MATCHER_CACHE_SIZE
    assert info.maxsize == MATCHER_CACHE_SIZE
    assert GlobMatcher.compile("FILE1.*").test("file1.txt")
