from rdkit import Chem, RDLogger

from retroviz.exceptions import InvalidSmilesError
from retroviz.typing import InchiKeyStr, SmilesStr
from retroviz.utils.logging import logger

# rdkit prints parse failures to stderr on its own; we report them through our logger instead
RDLogger.DisableLog("rdApp.*")


def _parse_smiles(smiles: str) -> Chem.Mol:
    if not isinstance(smiles, str) or not smiles:
        logger.error(f"Provided SMILES is not a valid string: {smiles}")
        raise InvalidSmilesError("SMILES input must be a non-empty string.")

    mol = Chem.MolFromSmiles(smiles)
    if mol is None:
        logger.debug(f"RDKit failed to parse SMILES: '{smiles}'")
        raise InvalidSmilesError(f"Invalid SMILES string: {smiles}")
    return mol


def canonicalize_smiles(smiles: str) -> SmilesStr:
    """
    Converts a SMILES string to its canonical form using RDKit.

    Stereochemistry is preserved.

    Raises:
        InvalidSmilesError: If the input is empty, not a string, or cannot be parsed.
    """
    mol = _parse_smiles(smiles)
    return SmilesStr(Chem.MolToSmiles(mol, isomericSmiles=True))


def get_inchikey(smiles: str) -> InchiKeyStr:
    """
    Computes the standard InChIKey for a SMILES string.

    InChIKeys are the identity used for stock lookups and for aligning routes,
    so two notations of the same molecule map to the same key.

    Raises:
        InvalidSmilesError: If the SMILES cannot be parsed or no InChIKey can be generated.
    """
    mol = _parse_smiles(smiles)
    inchikey = Chem.MolToInchiKey(mol)
    if not inchikey:
        raise InvalidSmilesError(f"Could not generate an InChIKey for SMILES: {smiles}")
    return InchiKeyStr(inchikey)
