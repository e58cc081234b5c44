from collections.abc import Iterable

from weather_gateway.models.common import PlaceCandidate, SearchRequest

COMMON_CITIES: tuple[PlaceCandidate, ...] = (
    PlaceCandidate(name="北京", lat=39.9042, lng=116.4074, address="中国 北京市"),
    PlaceCandidate(name="上海", lat=31.2304, lng=121.4737, address="中国 上海市"),
    PlaceCandidate(name="广州", lat=23.1291, lng=113.2644, address="中国 广东省 广州市"),
    PlaceCandidate(name="深圳", lat=22.5431, lng=114.0579, address="中国 广东省 深圳市"),
    PlaceCandidate(name="杭州", lat=30.2741, lng=120.1551, address="中国 浙江省 杭州市"),
    PlaceCandidate(name="南京", lat=32.0603, lng=118.7969, address="中国 江苏省 南京市"),
    PlaceCandidate(name="成都", lat=30.5728, lng=104.0668, address="中国 四川省 成都市"),
    PlaceCandidate(name="西安", lat=34.3416, lng=108.9398, address="中国 陕西省 西安市"),
    PlaceCandidate(name="武汉", lat=30.5928, lng=114.3055, address="中国 湖北省 武汉市"),
    PlaceCandidate(name="重庆", lat=29.5647, lng=106.5507, address="中国 重庆市"),
    PlaceCandidate(name="天津", lat=39.3434, lng=117.3616, address="中国 天津市"),
    PlaceCandidate(name="苏州", lat=31.2989, lng=120.5853, address="中国 江苏省 苏州市"),
    PlaceCandidate(name="青岛", lat=36.0986, lng=120.3719, address="中国 山东省 青岛市"),
    PlaceCandidate(name="大连", lat=38.9140, lng=121.6147, address="中国 辽宁省 大连市"),
    PlaceCandidate(name="厦门", lat=24.4798, lng=118.0894, address="中国 福建省 厦门市"),
    PlaceCandidate(name="长沙", lat=28.2282, lng=112.9388, address="中国 湖南省 长沙市"),
    PlaceCandidate(name="济南", lat=36.6512, lng=117.1201, address="中国 山东省 济南市"),
    PlaceCandidate(name="哈尔滨", lat=45.8038, lng=126.5349, address="中国 黑龙江省 哈尔滨市"),
    PlaceCandidate(name="郑州", lat=34.7466, lng=113.6254, address="中国 河南省 郑州市"),
    PlaceCandidate(name="长春", lat=43.8171, lng=125.3235, address="中国 吉林省 长春市"),
    PlaceCandidate(name="沈阳", lat=41.8057, lng=123.4315, address="中国 辽宁省 沈阳市"),
    PlaceCandidate(name="昆明", lat=25.0389, lng=102.7183, address="中国 云南省 昆明市"),
    PlaceCandidate(name="福州", lat=26.0745, lng=119.2965, address="中国 福建省 福州市"),
    PlaceCandidate(name="无锡", lat=31.4912, lng=120.3124, address="中国 江苏省 无锡市"),
    PlaceCandidate(name="合肥", lat=31.8206, lng=117.2272, address="中国 安徽省 合肥市"),
    PlaceCandidate(name="石家庄", lat=38.0428, lng=114.5149, address="中国 河北省 石家庄市"),
    PlaceCandidate(name="宁波", lat=29.8683, lng=121.5440, address="中国 浙江省 宁波市"),
    PlaceCandidate(name="佛山", lat=23.0218, lng=113.1219, address="中国 广东省 佛山市"),
    PlaceCandidate(name="东莞", lat=23.0489, lng=113.7447, address="中国 广东省 东莞市"),
    PlaceCandidate(name="温州", lat=28.0000, lng=120.6667, address="中国 浙江省 温州市"),
    PlaceCandidate(name="泉州", lat=24.8740, lng=118.6757, address="中国 福建省 泉州市"),
    PlaceCandidate(name="烟台", lat=37.5365, lng=121.3914, address="中国 山东省 烟台市"),
    PlaceCandidate(name="嘉兴", lat=30.7467, lng=120.7550, address="中国 浙江省 嘉兴市"),
    PlaceCandidate(name="金华", lat=29.1028, lng=119.6472, address="中国 浙江省 金华市"),
    PlaceCandidate(name="台州", lat=28.6568, lng=121.4281, address="中国 浙江省 台州市"),
    PlaceCandidate(name="绍兴", lat=30.0023, lng=120.5810, address="中国 浙江省 绍兴市"),
    PlaceCandidate(name="湖州", lat=30.8703, lng=120.0937, address="中国 浙江省 湖州市"),
    PlaceCandidate(name="丽水", lat=28.4517, lng=119.9219, address="中国 浙江省 丽水市"),
    PlaceCandidate(name="衢州", lat=28.9700, lng=118.8733, address="中国 浙江省 衢州市"),
    PlaceCandidate(name="舟山", lat=30.0360, lng=122.2070, address="中国 浙江省 舟山市"),
)


class PlaceTable:
    """Offline place-name table used before and after the external search provider.

    A place matches when its name contains the query, the query contains its
    name (so "杭州西湖" still finds 杭州), or its address contains the query.
    """

    def __init__(self, places: Iterable[PlaceCandidate] = COMMON_CITIES) -> None:
        self._places = tuple(places)

    def __len__(self) -> int:
        return len(self._places)

    def match(self, query: str, case_sensitive: bool = True) -> list[PlaceCandidate]:
        needle = query.strip() if case_sensitive else query.strip().lower()
        if not needle:
            return []

        matches = []
        for place in self._places:
            name = place.name if case_sensitive else place.name.lower()
            address = place.address if case_sensitive else place.address.lower()
            if needle in name or name in needle or needle in address:
                matches.append(place)
        return matches

    async def match_exact(self, request: SearchRequest) -> list[PlaceCandidate]:
        """First search stage: case-sensitive match, as the table spells it."""
        return self.match(request.query)

    async def match_relaxed(self, request: SearchRequest) -> list[PlaceCandidate]:
        """Last search stage: case-insensitive match against the same table."""
        return self.match(request.query, case_sensitive=False)
