"""
Keyword pack loader with validation and caching.

Loads the YAML packs that hold every keyword table of the engine, validates
them against the schema and keeps them in memory for the life of the process.
"""

import os
import logging
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from pydantic import BaseModel, ValidationError

from racha.config.engine_config import EngineConfig
from .schema import CulturalPatternPack, ExpenseLexicon, RegionalExpressionPack


logger = logging.getLogger(__name__)

DEFAULT_PACK_DIR = Path(__file__).resolve().parent.parent.parent / 'resources'

PACK_FILES = {
    'cultural_patterns': ('cultural_patterns.yaml', CulturalPatternPack),
    'regional_expressions': ('regional_expressions.yaml', RegionalExpressionPack),
    'expense_lexicon': ('expense_lexicon.yaml', ExpenseLexicon),
}


class CulturalPackLoader:
    """Loads and holds the keyword packs."""

    def __init__(self, pack_dir: Optional[str] = None, strict: bool = True):
        """
        Initialize pack loader.

        Args:
            pack_dir: Directory containing the pack YAML files
                      (defaults to RACHA_PACK_DIR, then the packaged resources)
            strict: Raise on the first invalid pack instead of logging it
        """
        self.pack_dir = Path(pack_dir or os.getenv('RACHA_PACK_DIR') or DEFAULT_PACK_DIR)
        self.strict = strict
        self._packs: Dict[str, BaseModel] = {}
        self._errors: Dict[str, List[str]] = {}
        self._loaded = False

    def load_all(self) -> None:
        """Load every pack from the directory."""
        if self._loaded:
            return

        if not self.pack_dir.exists():
            raise FileNotFoundError(f"Pack directory not found: {self.pack_dir}")

        for pack_name, (file_name, model) in PACK_FILES.items():
            self._load_single_pack(pack_name, self.pack_dir / file_name, model)

        if not self._packs:
            raise ValueError(f"No valid packs found in {self.pack_dir}")

        self._loaded = True
        logger.info(f"Loaded {len(self._packs)} keyword packs from {self.pack_dir}")

    def _load_single_pack(self, pack_name: str, yaml_file: Path, model) -> None:
        """Load and validate a single YAML pack."""
        try:
            if not yaml_file.exists():
                raise FileNotFoundError(f"Pack file not found: {yaml_file}")

            with open(yaml_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)

            if not isinstance(data, dict):
                raise ValueError(f"Expected a YAML mapping at top-level, got {type(data).__name__}")

            pack = model(**data)
            self._packs[pack_name] = pack
            logger.debug(f"Loaded pack: {pack.id} v{pack.version} from {yaml_file}")

        except yaml.YAMLError as e:
            self._record_error(pack_name, f"Invalid YAML in {yaml_file}: {e}")
        except (ValidationError, ValueError, FileNotFoundError, TypeError) as e:
            self._record_error(pack_name, f"Failed to load pack {yaml_file}: {e}")

    def _record_error(self, pack_name: str, error_msg: str) -> None:
        self._errors.setdefault(pack_name, []).append(error_msg)
        if self.strict:
            raise ValueError(error_msg)
        logger.warning(error_msg)

    def _get(self, pack_name: str):
        if not self._loaded:
            self.load_all()
        pack = self._packs.get(pack_name)
        if pack is None:
            raise ValueError(f"Pack '{pack_name}' is not available (see load errors)")
        return pack

    @property
    def cultural_patterns(self) -> CulturalPatternPack:
        return self._get('cultural_patterns')

    @property
    def regional_expressions(self) -> RegionalExpressionPack:
        return self._get('regional_expressions')

    @property
    def expense_lexicon(self) -> ExpenseLexicon:
        return self._get('expense_lexicon')

    def get_available_packs(self) -> List[str]:
        """Get names of the packs that loaded successfully."""
        if not self._loaded:
            self.load_all()
        return list(self._packs.keys())

    def validate_all(self) -> Dict[str, List[str]]:
        """
        Check loaded packs for gaps the schema cannot see.

        Returns:
            Dictionary mapping pack names to a list of problems
        """
        if not self._loaded:
            self.load_all()

        errors: Dict[str, List[str]] = {name: list(msgs) for name, msgs in self._errors.items()}

        cultural = self._packs.get('cultural_patterns')
        if cultural is not None:
            problems = []
            for name, pattern in cultural.patterns.items():
                if pattern.scenarios[0].value != name:
                    problems.append(f"Pattern '{name}' does not rank its own scenario first")
            for cascade in ('region_terms', 'time_of_day', 'group_types', 'scenario_fallback',
                            'payment_methods', 'social_dynamics'):
                if not getattr(cultural, cascade):
                    problems.append(f"Missing cascade: {cascade}")
            if not cultural.slang:
                problems.append("Missing slang categories")
            if problems:
                errors.setdefault('cultural_patterns', []).extend(problems)

        regional = self._packs.get('regional_expressions')
        if regional is not None:
            problems = [
                f"Region '{region.value}' has no expressions"
                for region, expressions in regional.regions.items() if not expressions
            ]
            if problems:
                errors.setdefault('regional_expressions', []).extend(problems)

        lexicon = self._packs.get('expense_lexicon')
        if lexicon is not None:
            problems = []
            if not lexicon.participants.canonical_names:
                problems.append("Missing canonical participant names")
            people = lexicon.participants
            matchable = set(people.individual_pronouns + people.group_pronouns + people.group_nouns
                            + people.family_nouns + people.couple_nouns)
            for word in sorted(set(people.canonical_names) - matchable):
                problems.append(f"Canonical name '{word}' is not a participant word")
            if not lexicon.categories:
                problems.append("Missing expense categories")
            if problems:
                errors.setdefault('expense_lexicon', []).extend(problems)

        return errors

    def reload(self) -> None:
        """Reload all packs from disk."""
        self._packs.clear()
        self._errors.clear()
        self._loaded = False
        self.load_all()
        logger.info("Keyword packs reloaded")


@lru_cache(maxsize=1)
def get_default_pack() -> CulturalPackLoader:
    """Process-wide loader built once from EngineConfig.from_env()."""
    config = EngineConfig.from_env()
    loader = CulturalPackLoader(config.pack_dir, strict=config.strict_packs)
    loader.load_all()
    return loader
