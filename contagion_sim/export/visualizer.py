"""Visualization and export for the contagion simulation."""

import matplotlib
matplotlib.use('Agg')  # Use non-interactive backend
import matplotlib.pyplot as plt
from matplotlib.patches import Circle, Rectangle
from pathlib import Path
from typing import List, Sequence, TYPE_CHECKING
from PIL import Image
import io

from ..model.layout import (
    CANVAS_HEIGHT,
    CANVAS_WIDTH,
    CENTER_RADIUS,
    QUARANTINE_REGION,
    TOTAL_REGIONS,
    region_bounds,
)

if TYPE_CHECKING:
    from ..model.state import HistoryRecord, SimulationState


class Visualizer:
    """
    Generates visual outputs using matplotlib.

    Supports:
    - Single PNG snapshots of the regions and agents
    - Animated GIF compilation
    - Stacked-area chart of the compartment history
    """

    # Color scheme
    COLORS = {
        'background': '#000000',
        'region': '#60708C',
        'quarantine_region': '#FF3B3B',
        'center': '#C0C0C0',
        'healthy': '#A3BE8C',
        'exposed': '#D08770',
        'infected': '#BF616A',
        'recovered': '#5E81AC',
        'dead': '#4C4C4C',
        'quarantined': '#FF3B3B',
        'quarantined_area': '#FF7B7B',
        'visitor_ring': '#75AAFF',
    }

    # Stacking order of the history chart, bottom first
    CHART_ORDER = ['infected', 'healthy', 'exposed', 'recovered', 'dead']

    def __init__(self, infection_radius: float = 0.0):
        self.infection_radius = infection_radius
        self.frames: List[Image.Image] = []

    def _agent_color(self, agent) -> str:
        if agent.quarantine in ('en_route_to_quarantine', 'quarantined', 'en_route_home'):
            return self.COLORS['quarantined']
        return self.COLORS.get(agent.status, self.COLORS['dead'])

    def _create_figure(self, state: "SimulationState") -> plt.Figure:
        """Create matplotlib figure for state visualization."""
        aspect = CANVAS_WIDTH / CANVAS_HEIGHT
        fig_height = 7
        fig, ax = plt.subplots(figsize=(fig_height * aspect, fig_height))
        fig.patch.set_facecolor(self.COLORS['background'])
        ax.set_facecolor(self.COLORS['background'])

        # Regions and their meeting points
        for idx in range(TOTAL_REGIONS):
            b = region_bounds(idx)
            is_ward = idx == QUARANTINE_REGION
            ax.add_patch(Rectangle(
                (b.min_x, b.min_y), b.max_x - b.min_x, b.max_y - b.min_y,
                fill=False,
                edgecolor=self.COLORS['quarantine_region' if is_ward else 'region'],
                linewidth=2.5 if is_ward else 1.5
            ))
            if not is_ward:
                ax.add_patch(Circle((b.center_x, b.center_y), CENTER_RADIUS,
                                    fill=False, edgecolor=self.COLORS['center'],
                                    linewidth=1.0))

        # Infection halos around free infected agents
        if self.infection_radius > 0:
            for agent in state.agents:
                if agent.status == 'infected' and agent.quarantine in (
                        'not_quarantined', 'pending_detection'):
                    ax.add_patch(Circle((agent.x, agent.y), self.infection_radius,
                                        fill=False, edgecolor=self.COLORS['infected'],
                                        linewidth=0.8, alpha=0.6))

        xs = [a.x for a in state.agents]
        ys = [a.y for a in state.agents]
        colors = [self._agent_color(a) for a in state.agents]
        ax.scatter(xs, ys, s=9, c=colors, linewidths=0)

        visitors = [a for a in state.agents if a.at_center]
        if visitors:
            ax.scatter([a.x for a in visitors], [a.y for a in visitors], s=30,
                       facecolors='none', edgecolors=self.COLORS['visitor_ring'],
                       linewidths=0.6)

        counts = state.counts
        ax.set_title(f'Tick {state.tick} | Infected: {counts.infected} | '
                     f'Dead: {counts.dead} | Rt: {state.rt:.2f} '
                     f'(max {state.max_rt:.2f})', color='white')

        # Canvas coordinates grow downward
        ax.set_xlim(0, CANVAS_WIDTH)
        ax.set_ylim(CANVAS_HEIGHT, 0)
        ax.set_aspect('equal')
        ax.set_xticks([])
        ax.set_yticks([])

        legend_elements = [
            plt.Line2D([0], [0], marker='o', color='w', label=name.capitalize(),
                       markerfacecolor=self.COLORS[name], markersize=7)
            for name in ('healthy', 'exposed', 'infected', 'recovered', 'dead', 'quarantined')
        ]
        ax.legend(handles=legend_elements, loc='upper right', fontsize=7)

        plt.tight_layout()
        return fig

    def buffer_frame(self, state: "SimulationState") -> None:
        """Store frame for GIF generation."""
        fig = self._create_figure(state)

        # Convert to PIL Image
        buf = io.BytesIO()
        fig.savefig(buf, format='png', dpi=60, facecolor=fig.get_facecolor())
        buf.seek(0)
        img = Image.open(buf).copy()
        self.frames.append(img)
        buf.close()
        plt.close(fig)

    def save_snapshot(self, state: "SimulationState", output_path: Path) -> None:
        """Save single PNG image of current state."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig = self._create_figure(state)
        fig.savefig(output_path, dpi=120, bbox_inches='tight',
                    facecolor=fig.get_facecolor())
        plt.close(fig)

    def save_history_chart(self, history: Sequence["HistoryRecord"],
                           output_path: Path) -> None:
        """Stacked-area chart of compartments over time, with Rt underneath."""
        if not history:
            return

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        ticks = [h.tick for h in history]
        layers = {name: [getattr(h, name) for h in history] for name in self.CHART_ORDER}

        fig, (ax_counts, ax_rt) = plt.subplots(
            2, 1, figsize=(9, 6), sharex=True,
            gridspec_kw={'height_ratios': [3, 1]}
        )
        ax_counts.stackplot(
            ticks,
            *[layers[name] for name in self.CHART_ORDER],
            labels=[name.capitalize() for name in self.CHART_ORDER],
            colors=[self.COLORS[name] for name in self.CHART_ORDER]
        )
        # Quarantined agents already sit inside a status band
        ax_counts.plot(ticks, [h.quarantined for h in history],
                       color=self.COLORS['quarantined_area'], linestyle='--',
                       label='Quarantined')
        ax_counts.set_ylabel('Agents')
        ax_counts.legend(loc='upper right', fontsize=8)
        ax_counts.margins(x=0)

        ax_rt.plot(ticks, [h.rt for h in history], color=self.COLORS['infected'])
        ax_rt.set_ylabel('Rt')
        ax_rt.set_xlabel('Tick')

        plt.tight_layout()
        fig.savefig(output_path, dpi=120)
        plt.close(fig)

    def generate_gif(self, output_path: Path, fps: int = 10) -> None:
        """Compile buffered frames into animated GIF."""
        if not self.frames:
            return

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        duration = int(1000 / fps)  # milliseconds per frame

        self.frames[0].save(
            output_path,
            save_all=True,
            append_images=self.frames[1:],
            duration=duration,
            loop=0
        )

    def clear_frames(self) -> None:
        """Clear buffered frames."""
        self.frames.clear()
