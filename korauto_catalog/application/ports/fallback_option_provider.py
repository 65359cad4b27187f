"""Fallback option provider port."""

from abc import ABC, abstractmethod
from typing import Mapping

from korauto_catalog.application.dtos.options import OptionItem
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import FilterValue


class FallbackOptionProvider(ABC):
    """Port interface for approximate, synchronously available option lists."""

    @abstractmethod
    def options_for(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        """
        Return a known approximate option list, or an empty list if none is known.

        Args:
            dimension: Dimension whose options are requested
            ancestor_filters: Concrete values of every ancestor of the dimension

        Returns:
            Option items (possibly empty)
        """
        pass
