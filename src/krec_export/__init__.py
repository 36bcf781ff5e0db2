"""KRec Export - tabular export of recordings."""
from .tables import actuator_table, export_recording, header_dict, imu_table

__all__ = ["actuator_table", "export_recording", "header_dict", "imu_table"]
