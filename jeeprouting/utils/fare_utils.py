BASE_FARE = 13.0           # PHP, covers the first BASE_DISTANCE_KM
BASE_DISTANCE_KM = 4.0
PER_KM_RATE = 1.80         # PHP per km beyond the base distance
DISCOUNT_FACTOR = 0.80     # students, seniors, PWD: 20% off


def calculate_discounted_fare(fare: float) -> float:
    """Discounted fare is a fixed percentage of the regular fare"""
    return round(fare * DISCOUNT_FACTOR, 2)


def calculate_fare(distance_km: float, passenger_type: str = 'regular') -> float:
    """
    Calculate jeepney fare for a stitched trip
    Args:
        distance_km: Total trip distance in kilometers
        passenger_type: Type of passenger (regular, student, senior, etc.)
    Returns:
        Fare amount in pesos
    """
    if distance_km <= BASE_DISTANCE_KM:
        fare = BASE_FARE
    else:
        fare = BASE_FARE + (distance_km - BASE_DISTANCE_KM) * PER_KM_RATE
    fare = round(fare, 2)

    if passenger_type and passenger_type.lower() != 'regular':
        return calculate_discounted_fare(fare)
    return fare
