from conftest import make_item

from budget_tracker import metrics, visualization


def test_allocation_chart_has_actual_and_target_traces():
    lines = metrics.allocation_lines({'essentials': 12000}, 10000, {'essentials': 50, 'savings': 15})
    fig = visualization.create_allocation_chart(lines)

    assert [trace.name for trace in fig.data] == ['Actual', 'Target']
    assert list(fig.data[0].x) == [100.0, 0.0]


def test_empty_inputs_give_placeholder_figures():
    assert visualization.create_allocation_chart([]).layout.title.text == 'No data to display'
    assert visualization.create_group_spending_pie([]).layout.title.text == 'No data to display'
    assert visualization.create_category_bar_chart([]).layout.title.text == 'No data to display'


def test_table_totals_chart():
    totals = [
        metrics.table_totals('first', [make_item('a', 'Rent', budget=100, expenses=[('x', 40)])], 500),
        metrics.table_totals('second', [], 0),
    ]
    fig = visualization.create_table_totals_chart(totals)

    assert {trace.name for trace in fig.data} == {'Budget', 'Spent', 'Available'}


def test_category_spending_frame_sorted_by_spend():
    items = [
        make_item('a', 'Rent', budget=100, expenses=[('x', 40)]),
        make_item('b', 'Food', budget=50, expenses=[('y', 45)]),
    ]
    frame = visualization.category_spending_frame(items)

    assert list(frame['category']) == ['Food', 'Rent']


def test_allocation_table_and_theme():
    lines = metrics.allocation_lines({}, 0, {'debt': 10})
    table = visualization.allocation_table(lines)
    fig = visualization.apply_theme(visualization.create_allocation_chart(lines), dark_mode=True)

    assert table.to_dict('records') == [{'Group': 'Debt', 'Actual %': 0.0, 'Target %': 10.0, 'Amount': 0.0}]
    assert fig.layout.template.layout.paper_bgcolor is not None
