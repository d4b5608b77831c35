"""
Output stream for one scrape cycle.

MetricSink is the only state shared between the classification loop and
the enrichment tasks of a cycle. Emission is guarded by a lock so the sink
can be written from the event loop and read from the thread that serves
the registry.
"""

import threading
from dataclasses import dataclass

from prometheus_client.core import GaugeMetricFamily

from rethinkdb_exporter.descriptors import MetricDescriptor, MetricDescriptors


@dataclass(frozen=True)
class Sample:
    """One gauge value with its label values, in descriptor label order."""

    descriptor: MetricDescriptor
    label_values: tuple[str, ...]
    value: float

    @property
    def labels(self) -> dict[str, str]:
        return dict(zip(self.descriptor.labels, self.label_values))


class MetricSink:
    """
    Thread-safe collector of gauge samples emitted during one cycle.

    Example:
        sink = MetricSink()
        sink.emit(descriptors.cluster_client_connections, 3.0)
        sink.emit(descriptors.cluster_docs_per_sec, 12.5, "read")
        families = sink.families(descriptors)
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._samples: list[Sample] = []

    def emit(self, descriptor: MetricDescriptor, value: float, *label_values: str) -> None:
        """
        Append one sample.

        Raises:
            ValueError: If the number of label values does not match the
                descriptor's label names.
        """
        if len(label_values) != len(descriptor.labels):
            raise ValueError(
                f"{descriptor.name}: expected {len(descriptor.labels)} label values, "
                f"got {len(label_values)}"
            )
        sample = Sample(descriptor, tuple(label_values), float(value))
        with self._lock:
            self._samples.append(sample)

    @property
    def samples(self) -> list[Sample]:
        """Snapshot of emitted samples in emission order."""
        with self._lock:
            return list(self._samples)

    def find(self, name: str) -> list[Sample]:
        """Return samples of the metric family with the given name."""
        return [s for s in self.samples if s.descriptor.name == name]

    def families(self, descriptors: MetricDescriptors) -> list[GaugeMetricFamily]:
        """
        Group samples into gauge families in descriptor order.

        Families without samples are left out. Samples within a family are
        sorted by label values, so cycles over identical data render
        identically regardless of the order enrichment tasks finished in.
        """
        by_name: dict[str, list[Sample]] = {}
        for sample in self.samples:
            by_name.setdefault(sample.descriptor.name, []).append(sample)

        families = []
        for desc in descriptors.all():
            samples = by_name.get(desc.name)
            if not samples:
                continue
            family = GaugeMetricFamily(desc.name, desc.help, labels=list(desc.labels))
            for sample in sorted(samples, key=lambda s: s.label_values):
                family.add_metric(list(sample.label_values), sample.value)
            families.append(family)
        return families
