import numpy as np
import pandas as pd
import plotly.graph_objects as go
from dataclasses import replace

import fire_simulation
import fire_solvers
from fire_math import MAX_SAFE_INTEGER


def add_milestones_to_fig(fig, df_results, inputs, x_axis='age'):
    """Helper to add vertical milestone lines and the partial income region to a plotly figure."""
    milestones = [
        (inputs.retire_age, "Retirement", "red"),
    ]
    depleted = df_results[df_results['assets'] < 0]
    if not depleted.empty:
        milestones.append((int(depleted[x_axis].iloc[0]), "Assets Depleted", "black"))

    for age, label, color in milestones:
        if df_results[x_axis].min() <= age <= df_results[x_axis].max():
            fig.add_vline(
                x=age,
                line_width=1.5,
                line_dash="dot",
                line_color=color,
                annotation_text=label,
                annotation_position="top left",
                annotation_textangle=-90
            )

    # Partial Income Region (Background Shading)
    if inputs.partial_income > 0 and inputs.partial_income_until_age >= inputs.retire_age:
        shade_start = max(inputs.retire_age, df_results[x_axis].min())
        shade_end = min(inputs.partial_income_until_age, df_results[x_axis].max())
        if shade_start <= shade_end:
            fig.add_vrect(
                x0=shade_start, x1=shade_end,
                fillcolor="LightGreen", opacity=0.2,
                layer="below", line_width=0,
                annotation_text="Partial Income", annotation_position="top left"
            )


def build_assets_chart(df_results, inputs):
    """Total assets by age, with a zero line so a shortfall stands out."""
    fig = go.Figure()
    fig.add_trace(go.Scatter(
        x=df_results['age'],
        y=df_results['assets'],
        mode='lines',
        name='Total Assets',
        line=dict(color='#8884d8', width=3)
    ))
    fig.add_hline(y=0, line_width=1, line_color="gray")

    add_milestones_to_fig(fig, df_results, inputs)
    fig.update_layout(
        title="Projected Net Worth",
        xaxis_title="Age",
        yaxis_title="Assets ($)",
        legend=dict(orientation="h", yanchor="top", y=-0.2, xanchor="center", x=0.5)
    )
    return fig


def build_breakdown_chart(df_results, inputs):
    fig = go.Figure()

    bar_mapping = [
        ('assets', 'Assets', '#8884d8'),
        ('expenses', 'Net Expenses', '#82ca9d'),
        ('income', 'Partial Income', '#ffc658'),
    ]

    for col, label, color in bar_mapping:
        if col in df_results.columns and (col != 'income' or df_results[col].any()):
            fig.add_trace(go.Bar(
                x=df_results['age'],
                y=df_results[col],
                name=label,
                marker_color=color
            ))

    add_milestones_to_fig(fig, df_results, inputs)
    fig.update_layout(
        title="Assets vs. Net Expenses by Age",
        barmode='group',
        xaxis_title="Age",
        yaxis_title="Amount ($)",
        legend=dict(orientation="h", yanchor="top", y=-0.2, xanchor="center", x=0.5)
    )
    return fig


def build_savings_sensitivity_chart(inputs, retire_ages=None):
    """Required annual savings under each strategy across a range of retirement ages."""
    if retire_ages is None:
        retire_ages = np.arange(inputs.current_age + 1, inputs.die_age)

    rows = []
    for retire_age in retire_ages:
        trial = replace(inputs, retire_age=int(retire_age))
        rows.append({
            'retire_age': int(retire_age),
            'fire': fire_solvers.solve_fire_savings(trial),
            'die_with_zero': fire_solvers.solve_die_with_zero_savings(trial),
        })
    df = pd.DataFrame(rows, columns=['retire_age', 'fire', 'die_with_zero'])

    # MAX_SAFE_INTEGER means "unreachable"; keep it off the axis
    df = df.replace(float(MAX_SAFE_INTEGER), np.nan)

    fig = go.Figure()
    fig.add_trace(go.Scatter(x=df['retire_age'], y=df['fire'], name='FIRE', line=dict(color='blue', width=2)))
    fig.add_trace(go.Scatter(x=df['retire_age'], y=df['die_with_zero'], name='Die with Zero',
                             line=dict(color='orange', width=2, dash='dash')))

    if df['retire_age'].min() <= inputs.retire_age <= df['retire_age'].max():
        fig.add_vline(x=inputs.retire_age, line_width=1, line_dash="dot", line_color="gray",
                      annotation_text="Current Plan")

    fig.update_layout(
        title="Required Annual Savings by Retirement Age",
        xaxis_title="Retirement Age",
        yaxis_title="Annual Savings ($)",
        legend=dict(orientation="h", yanchor="top", y=-0.2, xanchor="center", x=0.5)
    )
    return fig


def plot_projection(inputs):
    """Runs the projection for inputs and shows every chart."""
    print("Generating Net Worth Projection Plots...")
    df_results = fire_simulation.run_simulation(inputs)

    build_assets_chart(df_results, inputs).show()
    build_breakdown_chart(df_results, inputs).show()
    build_savings_sensitivity_chart(inputs).show()


if __name__ == "__main__":
    try:
        inputs = fire_simulation.DEFAULT_INPUTS

        fire_savings = fire_solvers.solve_fire_savings(inputs)
        dwz_savings = fire_solvers.solve_die_with_zero_savings(inputs)
        print(f"FIRE annual savings: ${fire_savings:,.0f}")
        print(f"Die with Zero annual savings: ${dwz_savings:,.0f}")

        for strategy in (fire_simulation.Strategy.FIRE, fire_simulation.Strategy.DIE_WITH_ZERO):
            plan = fire_solvers.apply_required_savings(inputs, strategy)
            data = fire_simulation.simulate(plan)
            summary = fire_simulation.summarize_results(plan, data)
            print(f"{strategy}: ${summary.retirement_assets:,.0f} at {plan.retire_age} "
                  f"(${summary.retirement_assets_today:,.0f} today), "
                  f"${summary.final_assets:,.0f} at {summary.die_age}")
            depleted_at = fire_simulation.depletion_age(data)
            if depleted_at is not None:
                print(f"  Assets run out at age {depleted_at}")
            if summary.exceeds_limits:
                print("  Warning: projection exceeds safe calculation limits")
            plot_projection(plan)

        print("All plots generated successfully.")
    except Exception as e:
        print(f"An error occurred: {e}\nEnsure fire_simulation.py is in your path.")
