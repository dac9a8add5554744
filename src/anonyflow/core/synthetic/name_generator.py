"""
Person name generator

Generates realistic Spanish-language full names (given name plus paternal
and maternal surnames) to replace real names.
"""

from dataclasses import dataclass

from anonyflow.core.synthetic.base import BaseSyntheticGenerator

GIVEN_NAMES = [
    "Sofía", "Isidora", "Agustina", "Emilia", "Florencia",
    "Martina", "Josefa", "Valentina", "Catalina", "Antonella",
    "Camila", "Fernanda", "Constanza", "Javiera", "Francisca",
    "Mateo", "Agustín", "Benjamín", "Vicente", "Tomás",
    "Maximiliano", "Joaquín", "Lucas", "Gaspar", "Martín",
    "Diego", "Sebastián", "Felipe", "Ignacio", "Cristóbal",
]

SURNAMES = [
    "González", "Muñoz", "Rojas", "Díaz", "Pérez",
    "Soto", "Contreras", "Silva", "Martínez", "Sepúlveda",
    "Morales", "Rodríguez", "López", "Fuentes", "Hernández",
    "Torres", "Araya", "Flores", "Espinoza", "Valenzuela",
    "Castillo", "Ramírez", "Reyes", "Gutiérrez", "Castro",
    "Vargas", "Álvarez", "Vásquez", "Tapia", "Fernández",
]


@dataclass
class NameGenerationResult:
    """Result of a name generation."""

    original: str
    synthetic: str
    given_name: str
    surnames: tuple[str, ...]


class NameGenerator(BaseSyntheticGenerator):
    """Person name generator.

    The number of words in the original decides the shape of the output:
    one word yields a given name, two words a given name and a surname,
    three or more a given name and two surnames.

    Example:
        >>> gen = NameGenerator()
        >>> result = gen.generate("Juan Pérez")
        >>> len(result.synthetic.split())
        2
    """

    def generate(self, original: str) -> NameGenerationResult:
        words = original.split()
        given_name = self._pick(GIVEN_NAMES, original, "given")
        surname_count = min(max(len(words) - 1, 0), 2)
        surnames = tuple(
            self._pick(SURNAMES, original, f"surname{i}") for i in range(surname_count)
        )
        synthetic = " ".join((given_name,) + surnames)

        # Never hand back the original itself
        if synthetic == original.strip():
            given_name = GIVEN_NAMES[(GIVEN_NAMES.index(given_name) + 1) % len(GIVEN_NAMES)]
            synthetic = " ".join((given_name,) + surnames)

        return NameGenerationResult(
            original=original,
            synthetic=synthetic,
            given_name=given_name,
            surnames=surnames,
        )
