"""Plotly visualisation helpers for the budget tracker.

Each function takes objects produced by :mod:`budget_tracker.metrics`
(or the ledger tables themselves) and returns a
``plotly.graph_objects.Figure`` ready for ``st.plotly_chart``. Empty
inputs produce an empty figure titled "No data to display" rather than
raising.
"""

from __future__ import annotations

from typing import Iterable, Sequence

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .metrics import AllocationLine, TableTotals, items_frame
from .models import BudgetItem

TABLE_LABELS = {'first': 'First Cutoff', 'second': 'Second Cutoff'}


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_allocation_chart(lines: Sequence[AllocationLine], title: str | None = None) -> go.Figure:
    """Compare actual and target share of available money per group.

    Parameters
    ----------
    lines : sequence of AllocationLine
        Output of :func:`budget_tracker.metrics.allocation_lines`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Grouped horizontal bar chart, actual next to target.
    """
    if not lines:
        return _empty_figure()
    groups = [line.group.title() for line in lines]
    fig = go.Figure()
    fig.add_trace(go.Bar(
        y=groups,
        x=[line.bar_width for line in lines],
        orientation='h',
        name='Actual',
        customdata=[line.actual_pct for line in lines],
        hovertemplate="%{y}: %{customdata:.1f}%<extra>Actual</extra>",
    ))
    fig.add_trace(go.Bar(
        y=groups,
        x=[line.target_pct for line in lines],
        orientation='h',
        name='Target',
        hovertemplate="%{y}: %{x:.1f}%<extra>Target</extra>",
    ))
    fig.update_layout(
        title=title or "Allocation vs target",
        barmode='group',
        xaxis_title="% of available money",
        xaxis_range=[0, 100],
    )
    return fig


def create_table_totals_chart(totals: Iterable[TableTotals], title: str | None = None) -> go.Figure:
    """Budget, spent and available money side by side for each cutoff table.

    Parameters
    ----------
    totals : iterable of TableTotals
        One entry per table.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Grouped bar chart.
    """
    rows = [
        {
            'Table': TABLE_LABELS.get(total.table, total.table),
            'Budget': total.total_budget,
            'Spent': total.total_spent,
            'Available': total.total_available,
        }
        for total in totals
    ]
    if not rows:
        return _empty_figure()
    df = pd.DataFrame(rows).melt(id_vars='Table', var_name='Figure', value_name='Amount')
    fig = px.bar(df, x='Table', y='Amount', color='Figure', barmode='group')
    fig.update_layout(title=title or "Cutoff totals", xaxis_title="", yaxis_title="Amount")
    return fig


def create_group_spending_pie(items: Iterable[BudgetItem], title: str | None = None) -> go.Figure:
    """Share of spending per allocation group.

    Parameters
    ----------
    items : iterable of BudgetItem
        Items whose expenses are counted.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Pie chart; groups without spending are left out.
    """
    frame = items_frame(items)
    if frame.empty or frame['spent'].sum() <= 0:
        return _empty_figure()
    spending = frame.groupby('group', as_index=False)['spent'].sum()
    spending = spending[spending['spent'] > 0]
    fig = px.pie(spending, names='group', values='spent')
    fig.update_layout(title=title or "Spending by group")
    return fig


def apply_theme(fig: go.Figure, dark_mode: bool) -> go.Figure:
    """Switch a figure between the light and dark Plotly templates."""
    fig.update_layout(template='plotly_dark' if dark_mode else 'plotly_white')
    return fig


def category_spending_frame(items: Iterable[BudgetItem]) -> pd.DataFrame:
    """Budget vs spent per category, largest spend first."""
    frame = items_frame(items)
    if frame.empty:
        return frame
    summary = frame.groupby('category', as_index=False)[['budget', 'spent']].sum()
    return summary.sort_values('spent', ascending=False).reset_index(drop=True)


def create_category_bar_chart(items: Iterable[BudgetItem], title: str | None = None) -> go.Figure:
    """Budget and spend per category.

    Parameters
    ----------
    items : iterable of BudgetItem
        Items to chart.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Grouped bar chart of categories.
    """
    summary = category_spending_frame(items)
    if summary.empty:
        return _empty_figure()
    df = summary.melt(id_vars='category', value_vars=['budget', 'spent'], var_name='Figure', value_name='Amount')
    fig = px.bar(df, x='category', y='Amount', color='Figure', barmode='group')
    fig.update_layout(title=title or "Budget vs spent by category", xaxis_title="Category", yaxis_title="Amount")
    return fig


def allocation_table(lines: Sequence[AllocationLine]) -> pd.DataFrame:
    """Tabular form of the allocation lines for ``st.dataframe``."""
    return pd.DataFrame(
        [
            {
                'Group': line.group.title(),
                'Actual %': round(line.actual_pct, 1),
                'Target %': line.target_pct,
                'Amount': line.amount,
            }
            for line in lines
        ],
        columns=['Group', 'Actual %', 'Target %', 'Amount'],
    )
