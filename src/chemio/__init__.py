"""Entrada/salida: documentos JSON y conversión con RDKit."""

from chemio.persistence import PersistenceManager, load_model, model_from_dict, model_to_dict, save_model

__all__ = ["PersistenceManager", "load_model", "model_from_dict", "model_to_dict", "save_model"]
