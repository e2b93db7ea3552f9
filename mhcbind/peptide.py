# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Value types used as composite keys throughout the binding cache: peptides
and MHC alleles.
"""

import string

# one-letter codes of the twenty native amino acids, in the order used
# by the rows of stabilized matrix files
AMINO_ACIDS = "ACDEFGHIKLMNPQRSTVWY"

AMINO_ACID_INDEX = {aa: i for (i, aa) in enumerate(AMINO_ACIDS)}

_FILE_SAFE_CHARACTERS = frozenset(string.ascii_letters + string.digits + "-._")


class Peptide(str):
    """
    Immutable amino acid sequence. Equality, hashing and ordering are those
    of the underlying sequence string.
    """

    __slots__ = ()

    def __new__(cls, sequence):
        if isinstance(sequence, Peptide):
            return sequence
        sequence = str(sequence)
        if len(sequence) == 0:
            raise ValueError("Empty peptide sequence")
        invalid = set(sequence).difference(AMINO_ACID_INDEX)
        if invalid:
            raise ValueError(
                "Invalid residue(s) %s in peptide '%s'" % (
                    "".join(sorted(invalid)), sequence))
        return str.__new__(cls, sequence)

    @classmethod
    def parse(cls, text):
        """
        Create a peptide from user-supplied text, ignoring surrounding
        whitespace and case.
        """
        return cls(str(text).strip().upper())

    def residue_at(self, position):
        return self[position]

    def __repr__(self):
        return "Peptide(%s)" % str.__repr__(self)


def as_peptides(peptides):
    """
    Convert an iterable of strings or Peptide objects into a list of
    Peptide objects, preserving order and duplicates.
    """
    if isinstance(peptides, str):
        peptides = [peptides]
    return [Peptide(p) for p in peptides]


class Allele(str):
    """
    Opaque MHC allele identifier such as 'HLA-A*02:01'.
    """

    __slots__ = ()

    def __new__(cls, name):
        if isinstance(name, Allele):
            return name
        name = str(name).strip()
        if not name:
            raise ValueError("Empty allele name")
        return str.__new__(cls, name)

    def file_key(self) -> str:
        """
        Escape characters which are unsafe in file names ('*', ':', '/'
        and friends) as %XX, so that distinct alleles always map to
        distinct file names.
        """
        return "".join(
            c if c in _FILE_SAFE_CHARACTERS else "%%%02X" % ord(c)
            for c in self)

    def __repr__(self):
        return "Allele(%s)" % str.__repr__(self)
