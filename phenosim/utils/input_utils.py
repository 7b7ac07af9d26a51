"""
Matrix input normalization for genotypes, kinship and correlation inputs.

Converts list, numpy array or pandas DataFrame input into a 2D float array
plus the row labels, when the input carries any.
"""

from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from ..exceptions import ShapeMismatch


def normalize_matrix_input(data, name: str = "matrix") -> Tuple[np.ndarray, Optional[List[str]]]:
    """
    Convert user-supplied matrix data into a 2D float array.

    Accepted inputs:
        - pandas DataFrame: values used, index kept as row labels
        - list of rows or 2D numpy array: used directly
        - 1D list / numpy array: treated as a single column

    Args:
        data: Raw matrix in any supported format.
        name: Name used in error messages.

    Returns:
        (array_2d, row_labels): row_labels is ``None`` unless *data* is a
        DataFrame.

    Raises:
        TypeError: If *data* is an unsupported type.
        ShapeMismatch: If *data* has more than two dimensions.
    """
    # --- pandas DataFrame ---------------------------------------------------
    if isinstance(data, pd.DataFrame):
        return data.to_numpy(dtype=float), [str(label) for label in data.index]

    # --- list / numpy array -------------------------------------------------
    if isinstance(data, (list, tuple, np.ndarray)):
        arr = np.asarray(data, dtype=float)

        # 1-D → single column
        if arr.ndim == 1:
            arr = arr.reshape(-1, 1)

        if arr.ndim != 2:
            raise ShapeMismatch(f"{name} must be 2-dimensional, got {arr.ndim} dimensions")
        return arr, None

    # --- unsupported --------------------------------------------------------
    raise TypeError(f"{name} must be a numpy array, list, or pandas DataFrame")
