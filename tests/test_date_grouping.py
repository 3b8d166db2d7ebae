from date_grouping import group_by_date


def test_groups_by_day_newest_first(make_expense):
    first = make_expense(date="2024-03-10", title="a")
    middle = make_expense(date="2024-03-12", title="b")
    last = make_expense(date="2024-03-10", title="c")

    sections = group_by_date([first, middle, last])

    assert [s.title for s in sections] == ["12 Mar 2024", "10 Mar 2024"]
    assert [s.date for s in sections] == ["2024-03-12", "2024-03-10"]
    # relative order within a day is preserved
    assert sections[1].data == [first, last]


def test_invalid_dates_sort_last_under_raw_title(make_expense):
    sections = group_by_date([
        make_expense(date="someday"),
        make_expense(date="2023-01-01"),
    ])

    assert [s.title for s in sections] == ["1 Jan 2023", "someday"]


def test_empty_input():
    assert group_by_date([]) == []
