ERRORS = {
  "E_FILE_MISSING": "Recording file missing",
  "E_IO": "Recording could not be read",
  "E_DECODE": "Record bytes corrupt or undecodable",
  "E_TRUNCATED": "Stream ends inside a record",
  "E_VALIDATION": "Header or frame malformed",
  "E_DUPLICATE_ACTUATOR_CONFIG": "Header declares an actuator_id more than once",
  "E_UNKNOWN_ACTUATOR": "Frame references an actuator_id missing from the header",
  "E_DUPLICATE_ACTUATOR": "Frame repeats an actuator_id",
  "E_EMPTY_IMU": "Frame carries an empty IMU block",
  "E_ORDERING": "Frame timestamp or counter goes backwards",
  "E_DUPLICATE_FRAME": "Two different frames share a real_timestamp",
  "E_INVALID_END_TIMESTAMP": "End timestamp precedes start or last frame",
  "E_NOT_FINALIZED": "Recording has no terminator record",
}
