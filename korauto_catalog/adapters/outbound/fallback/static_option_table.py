"""Static fallback option lists."""

from typing import Mapping, Optional

from korauto_catalog.application.dtos.options import OptionItem
from korauto_catalog.application.ports.fallback_option_provider import FallbackOptionProvider
from korauto_catalog.domain.value_objects.dimension import Dimension
from korauto_catalog.domain.value_objects.filter_value import FilterValue, StringValue

# Common models per manufacturer, shown while the remote list is loading
MODELS_BY_MANUFACTURER: dict[str, list[str]] = {
    "audi": ["A3", "A4", "A6", "Q3", "Q5", "Q7"],
    "bmw": ["1 Series", "3 Series", "5 Series", "7 Series", "X3", "X5"],
    "chevrolet": ["Malibu", "Spark", "Trax", "Trailblazer"],
    "genesis": ["G70", "G80", "G90", "GV70", "GV80"],
    "hyundai": ["Avante", "Grandeur", "Santa Fe", "Sonata", "Tucson"],
    "kia": ["K3", "K5", "K8", "Carnival", "Sorento", "Sportage"],
    "mercedes-benz": ["A-Class", "C-Class", "E-Class", "S-Class", "GLC", "GLE"],
    "volkswagen": ["Golf", "Passat", "Tiguan", "Touareg"],
}

# Engine variants per manufacturer
ENGINES_BY_MANUFACTURER: dict[str, list[str]] = {
    "audi": ["2.0 TDI", "3.0 TDI", "2.0 TFSI", "3.0 TFSI", "1.4 TFSI"],
    "bmw": ["2.0 diesel", "3.0 diesel", "2.0 petrol", "3.0 petrol", "4.0 petrol"],
    "mercedes-benz": ["2.2 diesel", "3.0 diesel", "2.0 petrol", "3.5 petrol"],
    "volkswagen": ["1.4 TSI", "1.6 TDI", "2.0 TDI", "2.0 TSI"],
}

FUEL_TYPES: dict[str, str] = {
    "gasoline": "Gasoline",
    "diesel": "Diesel",
    "hybrid": "Hybrid",
    "electric": "Electric",
    "lpg": "LPG",
    "hydrogen": "Hydrogen",
}

TRANSMISSIONS: dict[str, str] = {
    "automatic": "Automatic",
    "manual": "Manual",
    "cvt": "CVT",
    "semi_automatic": "Semi-Automatic",
}

BODY_TYPES: dict[str, str] = {
    "sedan": "Sedan",
    "suv": "SUV",
    "hatchback": "Hatchback",
    "coupe": "Coupe",
    "convertible": "Convertible",
    "wagon": "Wagon",
    "pickup": "Pickup",
    "van": "Van",
    "minivan": "Minivan",
}

COLORS: list[str] = [
    "White",
    "Black",
    "Silver",
    "Grey",
    "Blue",
    "Red",
    "Green",
    "Brown",
    "Beige",
]


class StaticOptionTable(FallbackOptionProvider):
    """Approximate option lists known without a network call.

    Items carry no counts; they are placeholders that the remote list
    replaces once it arrives.
    """

    def options_for(
        self,
        dimension: Dimension,
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        """
        Return the static list for a dimension, or an empty list if none is known.

        Args:
            dimension: Dimension whose options are requested
            ancestor_filters: Concrete values of every ancestor of the dimension

        Returns:
            Option items (possibly empty)
        """
        if dimension is Dimension.MODEL:
            return self._by_manufacturer(MODELS_BY_MANUFACTURER, ancestor_filters)
        if dimension is Dimension.ENGINE:
            return self._by_manufacturer(ENGINES_BY_MANUFACTURER, ancestor_filters)
        if dimension is Dimension.FUEL_TYPE:
            return self._from_codes(FUEL_TYPES)
        if dimension is Dimension.TRANSMISSION:
            return self._from_codes(TRANSMISSIONS)
        if dimension is Dimension.BODY_TYPE:
            return self._from_codes(BODY_TYPES)
        if dimension is Dimension.COLOR:
            return [OptionItem(value=color, label=color) for color in COLORS]
        return []

    def _manufacturer_key(self, ancestor_filters: Mapping[Dimension, FilterValue]) -> Optional[str]:
        manufacturer = ancestor_filters.get(Dimension.MANUFACTURER)
        if isinstance(manufacturer, StringValue):
            return manufacturer.id.casefold()
        return None

    def _by_manufacturer(
        self,
        table: dict[str, list[str]],
        ancestor_filters: Mapping[Dimension, FilterValue],
    ) -> list[OptionItem]:
        key = self._manufacturer_key(ancestor_filters)
        if key is None:
            return []
        return [OptionItem(value=name, label=name) for name in table.get(key, [])]

    def _from_codes(self, table: dict[str, str]) -> list[OptionItem]:
        return [OptionItem(value=code, label=label) for code, label in table.items()]
