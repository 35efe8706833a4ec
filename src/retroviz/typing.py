from typing import NewType

# canonical SMILES, as produced by retroviz.domain.chem.canonicalize_smiles
SmilesStr = NewType("SmilesStr", str)

# standard 27-character InChIKey, compared by exact string equality
InchiKeyStr = NewType("InchiKeyStr", str)
